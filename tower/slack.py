# Control Tower Slack Functions
# User lookup, goal and partner check-in prompts, and the check-in modal

import json
from urllib.parse import parse_qs

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from .config import DASHBOARD_URL, EXCLUDED_QUARTERS, SLACK_BOT_TOKEN
from .helpers import format_date_display


def get_client():
    """Slack WebClient for the bot, or None if no token is configured"""
    if not SLACK_BOT_TOKEN:
        print("No Slack bot token configured")
        return None
    return WebClient(token=SLACK_BOT_TOKEN)


# ===================
# USER LOOKUP
# ===================

def name_matches(name, member):
    """Check whether a goal owner's name refers to this Slack member"""
    if not name:
        return False

    profile = member.get('profile') or {}
    real_name = member.get('real_name') or ''
    display_name = profile.get('display_name') or ''
    profile_real_name = profile.get('real_name') or ''
    username = member.get('name') or ''

    if name in (real_name, display_name, profile_real_name):
        return True

    # Slack usernames are usually the full name squashed, e.g. "jimmybuffi"
    if username == ''.join(name.lower().split()):
        return True

    # First + last name match, ignoring middle names
    name_parts = name.lower().split()
    real_name_parts = real_name.lower().split()
    if len(name_parts) >= 2 and len(real_name_parts) >= 2:
        return name_parts[0] == real_name_parts[0] and name_parts[-1] == real_name_parts[-1]

    return False


def find_slack_user(owner_name, members, alternative_name=None):
    """Find the member for an owner, trying the alternative Slack name second"""
    people = [m for m in members if not m.get('is_bot') and not m.get('deleted')]

    for candidate in (owner_name, alternative_name):
        if not candidate:
            continue
        for member in people:
            if name_matches(candidate, member):
                return member
    return None


def alternative_slack_name(owner_name, employees):
    """The employee's slackName, if it differs from their goal-owner name"""
    for employee in employees or []:
        if employee.get('name') == owner_name:
            slack_name = employee.get('slackName')
            if slack_name and slack_name != owner_name:
                return slack_name
    return None


def list_members(client):
    """All workspace members, following pagination"""
    members = []
    cursor = None
    while True:
        response = client.users_list(cursor=cursor) if cursor else client.users_list()
        members.extend(response.get('members', []))
        cursor = (response.get('response_metadata') or {}).get('next_cursor')
        if not cursor:
            return members


def lookup_slack_user_id(client, owner_name, employees=None, members=None):
    """Resolve a goal owner to a Slack user ID.

    Returns the user ID or None if nobody matches or Slack can't be reached.
    Pass members to reuse one users.list call across several lookups.
    """
    try:
        if members is None:
            members = list_members(client)
    except SlackApiError as e:
        print(f"Error listing Slack users: {e.response.get('error')}")
        return None

    alternative = alternative_slack_name(owner_name, employees)
    user = find_slack_user(owner_name, members, alternative)

    if not user:
        print(f"No Slack user found for: '{owner_name}'")
        return None

    print(f"Found Slack user: {owner_name} -> {user['id']} ({user.get('real_name')})")
    return user['id']


# ===================
# MESSAGES
# ===================

def _section(text):
    return {'type': 'section', 'text': {'type': 'mrkdwn', 'text': text}}


def _plain(text):
    return {'type': 'plain_text', 'text': text, 'emoji': True}


def build_checkin_message(user_id, goal, quarter_progress):
    """DM asking the owner for their weekly update on one goal"""
    expected_progress = int(round(quarter_progress))
    current_progress = goal.get('completion', 0)
    quarter = goal.get('quarter')

    button_value = {
        'goalId': goal.get('id'),
        'goalTitle': goal.get('title'),
        'currentProgress': current_progress,
        'expectedProgress': expected_progress,
        'quarter': quarter,
        'keyResults': goal.get('keyResults') or '',
        'completedKRs': goal.get('completedKRs') or ''
    }

    return {
        'channel': user_id,
        'text': f"Weekly check-in for {quarter} goals",
        'blocks': [
            _section(f"Hey! 👋 Weekly check-in for {quarter} goals"),
            _section(
                f"🎯 *{goal.get('title')}* ({current_progress}% complete)\n\n"
                f"We're {expected_progress}% through {quarter} - time for your weekly update:"
            ),
            {
                'type': 'actions',
                'elements': [{
                    'type': 'button',
                    'text': _plain('📝 Update Progress'),
                    'style': 'primary',
                    'action_id': 'start_checkin',
                    'value': json.dumps(button_value)
                }]
            }
        ]
    }


def _text_input(block_id, label, placeholder, optional=False):
    block = {
        'type': 'input',
        'block_id': block_id,
        'element': {
            'type': 'plain_text_input',
            'action_id': f"{block_id}_input",
            'multiline': True,
            'placeholder': {'type': 'plain_text', 'text': placeholder}
        },
        'label': _plain(label)
    }
    if optional:
        block['optional'] = True
    return block


def build_checkin_modal(goal_data):
    """Check-in form opened from the 'Update Progress' button"""
    return {
        'type': 'modal',
        'callback_id': 'goal_checkin',
        'private_metadata': json.dumps(goal_data),
        'title': _plain('Weekly Goal Check-in'),
        'submit': _plain('Submit Update'),
        'close': _plain('Cancel'),
        'blocks': [
            _section(
                f"🎯 *{goal_data.get('goalTitle')}*\n"
                f"Current: {goal_data.get('currentProgress')}% | Expected: {goal_data.get('expectedProgress')}%"
            ),
            _text_input('went_well', '1️⃣ What went well this week?', 'What progress did you make this week?'),
            _text_input('challenges', "2️⃣ What didn't go well this week?", 'What blockers or challenges did you face?'),
            _text_input(
                'completed_krs',
                '3️⃣ Are there any KRs that should move over to complete?',
                'List any KRs that should be moved to completed status',
                optional=True
            ),
            {
                'type': 'input',
                'block_id': 'progress_estimate',
                'element': {
                    'type': 'number_input',
                    'action_id': 'progress_input',
                    'is_decimal_allowed': False,
                    'min_value': '0',
                    'max_value': '100',
                    'initial_value': str(goal_data.get('currentProgress', 0))
                },
                'label': _plain('4️⃣ Where would you estimate progress is? (0-100%)')
            }
        ]
    }


def build_update_summary(channel_id, user, goal_data, answers):
    """Channel post summarising a submitted check-in"""
    current = goal_data.get('currentProgress', 0)
    new_progress = answers['progress']
    change = new_progress - current
    emoji = '📈' if change > 0 else '📉' if change < 0 else '➡️'

    blocks = [
        _section(f"*Goal Update from <@{user.get('id')}>* {emoji}"),
        {
            'type': 'section',
            'fields': [
                {'type': 'mrkdwn', 'text': f"*Goal:*\n{goal_data.get('goalTitle')}"},
                {'type': 'mrkdwn', 'text': f"*Progress:*\n{current}% → {new_progress}%"}
            ]
        },
        {
            'type': 'section',
            'fields': [
                {'type': 'mrkdwn', 'text': f"*✅ What went well:*\n{answers['wentWell']}"},
                {'type': 'mrkdwn', 'text': f"*⚠️ Challenges:*\n{answers['challenges']}"}
            ]
        }
    ]
    if answers['completedKRs']:
        blocks.append(_section(f"*🎯 KRs to mark complete:*\n{answers['completedKRs']}"))

    return {
        'channel': channel_id,
        'text': f"Goal update from {user.get('name')}",
        'blocks': blocks
    }


def build_carry_forward_message(user_id, title, quarter, focus, kr_deadline):
    """DM telling an owner they have a new goal and when its KRs are due"""
    button_value = {
        'goalTitle': title,
        'currentProgress': 0,
        'quarter': quarter
    }

    return {
        'channel': user_id,
        'text': f"🎯 New Company Goal Assignment for {quarter}",
        'blocks': [
            {'type': 'header', 'text': {'type': 'plain_text', 'text': f"🎯 New Company Goal for {quarter}"}},
            _section(f"You've been assigned a company goal for {quarter}:\n\n*\"{title}\"*\n\n📋 *Focus Area:* {focus}"),
            _section(
                f"🎯 *{title}* ({quarter})\n\n"
                f"📅 *Action Required:* Please prepare your Key Results (KRs) for this goal.\n\n"
                f"⏰ *Deadline:* {kr_deadline}\n\n"
                "Your KRs should be specific, measurable outcomes that will help achieve this goal. "
                "Please submit them for approval before the deadline."
            ),
            {
                'type': 'actions',
                'elements': [{
                    'type': 'button',
                    'text': _plain('Submit Goal for Approval'),
                    'style': 'primary',
                    'action_id': 'submit_goal_approval',
                    'value': json.dumps(button_value)
                }]
            },
            {
                'type': 'context',
                'elements': [{
                    'type': 'mrkdwn',
                    'text': '💡 Need help defining KRs? Reach out to your manager or check the goal-setting guidelines.'
                }]
            }
        ]
    }


def build_partner_checkin_message(user_id, partner, triggered_by):
    """DM asking a partner's main contact for this week's partner update"""
    name = partner.get('partnerName')
    last_updated = partner.get('lastUpdated')

    button_value = {
        'partnerId': partner.get('id'),
        'partnerName': name,
        'currentHealthScore': partner.get('currentHealthScore'),
        'previousHealthScore': partner.get('currentHealthScore')
    }

    return {
        'channel': user_id,
        'text': f"🤝 Partner Update: {name}",
        'blocks': [
            {'type': 'header', 'text': {'type': 'plain_text', 'text': f"🤝 Partner Update: {name}"}},
            {
                'type': 'section',
                'fields': [
                    {
                        'type': 'mrkdwn',
                        'text': f"*Current Health Score:* {partner.get('currentHealthScore')}/10 {partner.get('trend')}"
                    },
                    {
                        'type': 'mrkdwn',
                        'text': f"*Last Updated:* {format_date_display(last_updated) if last_updated else 'Never'}"
                    },
                    {'type': 'mrkdwn', 'text': f"*Category:* {partner.get('category')}"}
                ]
            },
            _section("Please provide this week's update for this partner:"),
            {
                'type': 'actions',
                'elements': [{
                    'type': 'button',
                    'text': _plain(f"Update {name}"),
                    'style': 'primary',
                    'action_id': 'partner_update_button',
                    'value': json.dumps(button_value)
                }]
            },
            {
                'type': 'context',
                'elements': [{
                    'type': 'mrkdwn',
                    'text': f"Triggered by: {triggered_by} | Partner dashboard: <{DASHBOARD_URL}|View Dashboard>"
                }]
            }
        ]
    }


# ===================
# CHECK-IN ROUNDS
# ===================

def filter_current_quarter(goals, quarter):
    """Goals in the current quarter, skipping backlog-style buckets"""
    return [
        goal for goal in goals
        if goal.get('quarter') == quarter and goal.get('quarter') not in EXCLUDED_QUARTERS
    ]


def group_goals_by_owner(goals):
    owner_goals = {}
    for goal in goals:
        owner_goals.setdefault(goal.get('owner'), []).append(goal)
    return owner_goals


def send_checkins(client, goals, quarter_progress, employees=None):
    """DM every goal owner a check-in prompt for each of their goals.

    Returns (owners messaged, total owners). An owner who can't be found
    in Slack, or whose messages fail, is skipped.
    """
    owner_goals = group_goals_by_owner(goals)

    try:
        members = list_members(client)
    except SlackApiError as e:
        print(f"Error listing Slack users: {e.response.get('error')}")
        return 0, len(owner_goals)

    sent = 0
    for owner, user_goals in owner_goals.items():
        user_id = lookup_slack_user_id(client, owner, employees, members=members)
        if not user_id:
            continue

        try:
            for goal in user_goals:
                client.chat_postMessage(**build_checkin_message(user_id, goal, quarter_progress))
            sent += 1
        except SlackApiError as e:
            print(f"Failed to send check-in to {owner}: {e.response.get('error')}")

    print(f"Sent check-ins to {sent} of {len(owner_goals)} owners")
    return sent, len(owner_goals)


def send_partner_checkins(client, partners, triggered_by, employees=None):
    """DM each partner's main contact a partner update prompt.

    Partners without a main contact are skipped. A contact who can't be
    found in Slack, or whose message fails, is reported as a failure.

    Returns:
        dict with successful (count), skipped (partner names) and
        failures ({partner, error} dicts)
    """
    result = {'successful': 0, 'skipped': [], 'failures': []}
    if not partners:
        return result

    try:
        members = list_members(client)
    except SlackApiError as e:
        error = e.response.get('error')
        print(f"Error listing Slack users: {error}")
        result['failures'] = [{'partner': p.get('partnerName'), 'error': error} for p in partners]
        return result

    for partner in partners:
        name = partner.get('partnerName')
        contact = (partner.get('mainContact') or '').strip()

        if not contact or contact == 'Unassigned':
            print(f"Skipping partner {name} - no main contact assigned")
            result['skipped'].append(name)
            continue

        user_id = lookup_slack_user_id(client, contact, employees, members=members)
        if not user_id:
            result['failures'].append({'partner': name, 'error': f"No Slack user found for main contact: {contact}"})
            continue

        try:
            client.chat_postMessage(**build_partner_checkin_message(user_id, partner, triggered_by))
            result['successful'] += 1
        except SlackApiError as e:
            print(f"Failed to send partner check-in for {name}: {e.response.get('error')}")
            result['failures'].append({'partner': name, 'error': e.response.get('error')})

    return result


# ===================
# INTERACTIONS
# ===================

def parse_interaction_payload(body, form=None):
    """Extract the interaction payload from a Slack request.

    Slack posts form-encoded `payload=<json>`; tests and internal callers
    may post the JSON directly.
    """
    if form and form.get('payload'):
        return json.loads(form['payload'])

    if isinstance(body, bytes):
        body = body.decode('utf-8')
    if isinstance(body, str):
        fields = parse_qs(body)
        if 'payload' in fields:
            return json.loads(fields['payload'][0])
        return json.loads(body)

    if isinstance(body, dict) and 'payload' in body:
        return json.loads(body['payload'])
    return body


def parse_checkin_values(view_state):
    """Pull the four answers out of a submitted check-in modal"""
    values = view_state.get('values', {})

    def _value(block_id, action_id):
        return (values.get(block_id, {}).get(action_id) or {}).get('value')

    try:
        progress = int(_value('progress_estimate', 'progress_input'))
    except (TypeError, ValueError):
        progress = 0

    return {
        'wentWell': _value('went_well', 'went_well_input') or '',
        'challenges': _value('challenges', 'challenges_input') or '',
        'completedKRs': _value('completed_krs', 'completed_krs_input') or '',
        'progress': max(0, min(100, progress))
    }


def open_checkin_modal(client, payload):
    """Handle the 'Update Progress' button. Returns True if a modal was opened."""
    action = (payload.get('actions') or [{}])[0]
    if action.get('action_id') != 'start_checkin':
        return False

    goal_data = json.loads(action['value'])
    client.views_open(trigger_id=payload['trigger_id'], view=build_checkin_modal(goal_data))
    print(f"Opened check-in modal for goal: {goal_data.get('goalTitle')}")
    return True


def handle_checkin_submission(client, payload, channel_id, recorder):
    """Post the check-in to the team channel, save it, and confirm to the user.

    Args:
        client: Slack WebClient
        payload: view_submission payload
        channel_id: Team channel for the summary
        recorder: callable(goal_id, progress, went_well, challenges, completed_krs)
            that saves the check-in; its failure doesn't stop the confirmation
    """
    view = payload['view']
    goal_data = json.loads(view.get('private_metadata') or '{}')
    answers = parse_checkin_values(view.get('state', {}))
    user = payload.get('user', {})

    if channel_id:
        client.chat_postMessage(**build_update_summary(channel_id, user, goal_data, answers))
    else:
        print("No Slack channel configured, skipping team summary")

    recorder(
        goal_data.get('goalId'),
        answers['progress'],
        answers['wentWell'],
        answers['challenges'],
        answers['completedKRs']
    )

    client.chat_postMessage(
        channel=user.get('id'),
        text=(
            f"✅ Thanks for your update! Your progress for \"{goal_data.get('goalTitle')}\" "
            f"has been updated to {answers['progress']}% and posted to the team channel."
        )
    )
    return answers
