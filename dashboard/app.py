# Control Tower Dashboard
# Goals, quarter progress and goal edits for the dashboard UI

import sys
import os

# Add parent directory to path for shared imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta

from flask import Flask, request, jsonify
from slack_sdk.errors import SlackApiError

from tower import (
    ConfigStore,
    NotionError,
    get_goals,
    get_focus_options,
    get_partners,
    update_goal_status,
    update_goal_progress,
    create_goal,
    resolve_quarter,
    quarter_summary,
    next_quarter_start,
    is_goal_at_risk,
    now_in_org_timezone,
    format_date_display,
    format_long_date
)
from tower.config import FALLBACK_FOCUS_OPTIONS
from tower.slack import get_client, lookup_slack_user_id, build_carry_forward_message

app = Flask(__name__)

store = ConfigStore()

# KRs are due this many days before the quarter starts
KR_DEADLINE_DAYS = 7


def current_quarter(today=None):
    """Resolve today's quarter against the stored quarter boundaries"""
    today = today or now_in_org_timezone().date()
    return resolve_quarter(today, store.get_quarterly_config())


@app.route('/goals', methods=['GET'])
def goals():
    """All goals from Notion, plus where we are in the current quarter.

    Returns:
        - goals: list of goals, each flagged atRisk if it is further behind
          expected progress than the admin threshold
        - quarter, quarterProgress, quarterStart, quarterEnd
    """
    try:
        all_goals = get_goals()
    except NotionError as e:
        print(f"Error fetching goals: {e}")
        return jsonify({'error': 'Failed to fetch goals', 'details': str(e)}), 500

    summary = quarter_summary(current_quarter())
    threshold = store.get_at_risk_threshold()

    for goal in all_goals:
        goal['lastUpdatedDisplay'] = format_date_display(goal['lastUpdated'])
        goal['atRisk'] = (
            goal['quarter'] == summary['quarter']
            and is_goal_at_risk(goal['completion'], summary['quarterProgress'], threshold)
        )

    return jsonify({'goals': all_goals, **summary})


@app.route('/quarter', methods=['GET'])
def quarter():
    """Current quarter. Accepts ?date=YYYY-MM-DD to resolve another day."""
    date_param = request.args.get('date')
    today = None
    if date_param:
        try:
            today = datetime.strptime(date_param, '%Y-%m-%d').date()
        except ValueError:
            return jsonify({'error': 'date must be YYYY-MM-DD'}), 400

    return jsonify(quarter_summary(current_quarter(today)))


@app.route('/goals/status', methods=['POST'])
def goal_status():
    """Change a goal's status.

    Accepts:
        - goalId: Notion page ID
        - status: New status name
    """
    data = request.get_json(silent=True) or {}
    goal_id = data.get('goalId')
    status = data.get('status')

    if not goal_id or not status:
        return jsonify({'error': 'Goal ID and status are required'}), 400

    try:
        new_status = update_goal_status(goal_id, status)
    except NotionError as e:
        print(f"Error updating goal status: {e}")
        return jsonify({'error': 'Failed to update goal status', 'details': str(e)}), 500

    return jsonify({'success': True, 'status': new_status})


@app.route('/goals/progress', methods=['POST'])
def goal_progress():
    """Change a goal's progress.

    Accepts:
        - goalId: Notion page ID
        - progress: 0-100
    """
    data = request.get_json(silent=True) or {}
    goal_id = data.get('goalId')
    progress = data.get('progress')

    if not goal_id or progress is None:
        return jsonify({'error': 'Goal ID and progress are required'}), 400

    if isinstance(progress, bool) or not isinstance(progress, (int, float)) or not 0 <= progress <= 100:
        return jsonify({'error': 'Progress must be between 0 and 100'}), 400

    try:
        updated_at = update_goal_progress(goal_id, progress)
    except NotionError as e:
        print(f"Error updating goal progress: {e}")
        return jsonify({'error': 'Failed to update goal progress', 'details': str(e)}), 500

    return jsonify({
        'success': True,
        'goalId': goal_id,
        'newProgress': progress,
        'updatedAt': updated_at
    })


@app.route('/employees', methods=['GET'])
def employees():
    """Employee list for owner pickers"""
    return jsonify(store.get_employee_config())


@app.route('/focus-options', methods=['GET'])
def focus_options():
    """Focus areas for the goal form, read from the Notion schema.

    Falls back to a built-in list when Notion can't be read, so the form
    always has options to show.
    """
    try:
        options = get_focus_options()
    except NotionError as e:
        print(f"Error fetching focus options: {e}")
        return jsonify({
            'focusOptions': FALLBACK_FOCUS_OPTIONS,
            'count': len(FALLBACK_FOCUS_OPTIONS),
            'fallback': True,
            'error': str(e)
        })

    return jsonify({'focusOptions': options, 'count': len(options)})


@app.route('/partners', methods=['GET'])
def partners():
    """Active partners with their health score and latest update"""
    try:
        active_partners = get_partners()
    except NotionError as e:
        print(f"Error fetching partners: {e}")
        return jsonify({'error': 'Failed to fetch partners from Notion', 'details': str(e)}), 500

    return jsonify(active_partners)


def notify_carry_forward(owner, title, quarter, focus):
    """DM the owner about their carried-forward goal. Best effort."""
    client = get_client()
    if not client:
        return False

    user_id = lookup_slack_user_id(client, owner, store.get_employees())
    if not user_id:
        return False

    today = now_in_org_timezone().date()
    quarter_start = next_quarter_start(quarter, today, store.get_quarterly_config())
    kr_deadline = format_long_date(quarter_start - timedelta(days=KR_DEADLINE_DAYS))

    try:
        client.chat_postMessage(**build_carry_forward_message(user_id, title, quarter, focus, kr_deadline))
        return True
    except SlackApiError as e:
        print(f"Error sending carry-forward notification: {e.response.get('error')}")
        return False


@app.route('/goals/carry-forward', methods=['POST'])
def carry_forward():
    """Copy a goal into a new quarter and tell the owner.

    Accepts:
        - title, focus, owner, quarter

    Returns:
        - pageId: The new Notion page
        - notified: Whether the owner was sent a Slack DM
    """
    data = request.get_json(silent=True) or {}
    title = data.get('title')
    focus = data.get('focus')
    owner = data.get('owner')
    quarter_label = data.get('quarter')

    if not title or not focus or not owner or not quarter_label:
        return jsonify({'error': 'Missing required fields: title, focus, owner, quarter'}), 400

    owner_ids = {e.get('name'): e.get('notionUserId') for e in store.get_employees()}
    owner_id = owner_ids.get(owner)
    if not owner_id:
        return jsonify({'error': f'Invalid owner: {owner}'}), 400

    try:
        page_id = create_goal(title, quarter_label, focus, owner_id)
    except NotionError as e:
        print(f"Error creating Notion page: {e}")
        return jsonify({'error': 'Failed to create goal in Notion', 'details': str(e)}), 500

    notified = notify_carry_forward(owner, title, quarter_label, focus)

    return jsonify({
        'success': True,
        'message': 'Goal successfully carried forward',
        'pageId': page_id,
        'notified': notified
    })


@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'Control Tower Dashboard',
        'version': '1.0'
    })


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    app.run(host='0.0.0.0', port=port)
