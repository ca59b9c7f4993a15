# Control Tower Notion Functions
# All Notion read/write operations on the goals and partners databases

import httpx
from datetime import date
from .config import (
    NOTION_API_BASE,
    NOTION_DATABASE_ID,
    NOTION_PARTNERS_DATABASE_ID,
    NOTION_TOKEN,
    NOTION_VERSION
)


class NotionError(Exception):
    """Raised when a Notion call the caller depends on fails."""


def _get_headers():
    """Get standard Notion headers"""
    if not NOTION_TOKEN:
        raise NotionError('Notion token not configured')
    return {
        'Authorization': f'Bearer {NOTION_TOKEN}',
        'Content-Type': 'application/json',
        'Notion-Version': NOTION_VERSION
    }


def _check_response(response):
    if response.status_code >= 400:
        raise NotionError(f"Notion API Error {response.status_code}: {response.text}")
    return response.json()


def _rich_text(content):
    return [{'text': {'content': content or ''}}]


# ===================
# PARSING
# ===================

def extract_rich_text(items):
    """Join the plain text of a Notion rich_text array"""
    if not items:
        return ''
    return ''.join(item.get('plain_text', '') or '' for item in items)


def parse_progress(number):
    """Convert the Progress property to a whole percentage.

    The column is percent-formatted, so Notion stores a fraction (0.45 = 45%).
    Values above 1 are already percentages.
    """
    if number is None:
        return 0
    try:
        value = float(number)
    except (TypeError, ValueError):
        return 0
    if value <= 1:
        value *= 100
    return int(round(value))


def transform_goal(page):
    """Turn a Notion page into the goal dict the dashboard uses"""
    props = page.get('properties', {})

    title = props.get('Project', {}).get('title') or []
    quarter = props.get('Quarter', {}).get('select') or {}
    status_prop = props.get('Status', {})
    status = status_prop.get('status') or status_prop.get('select') or {}
    owners = props.get('Owner', {}).get('people') or []
    focus = props.get('Focus', {}).get('multi_select') or []
    last_edited = page.get('last_edited_time') or date.today().isoformat()

    return {
        'id': page.get('id'),
        'title': (title[0].get('plain_text') if title else None) or 'Untitled',
        'quarter': quarter.get('name'),
        'status': status.get('name') or 'Not started',
        'owner': (owners[0].get('name') if owners else None) or 'Unassigned',
        'completion': parse_progress(props.get('Progress', {}).get('number')),
        'focus': ', '.join(option['name'] for option in focus) or 'General',
        'keyResults': extract_rich_text(props.get('Key Results', {}).get('rich_text')),
        'completedKRs': extract_rich_text(props.get('Completed KRs', {}).get('rich_text')),
        'lastUpdated': last_edited.split('T')[0]
    }


def _first_rollup_item(prop):
    rollup = prop.get('rollup') or {}
    if rollup.get('type') == 'array' and rollup.get('array'):
        return rollup['array'][0] or {}
    return {}


def _formula_or_rollup_number(prop, default=0):
    """Number from a formula, or from a rollup of numbers"""
    formula = prop.get('formula') or {}
    if formula.get('number') is not None:
        return formula['number']
    item = _first_rollup_item(prop)
    if item.get('number') is not None:
        return item['number']
    number = (prop.get('rollup') or {}).get('number')
    return number if number is not None else default


def _formula_or_rollup_text(prop, default=''):
    """String from a formula, or from the first rolled-up text or formula"""
    formula = prop.get('formula') or {}
    if formula.get('string'):
        return formula['string']
    item = _first_rollup_item(prop)
    if (item.get('formula') or {}).get('string'):
        return item['formula']['string']
    if item.get('rich_text'):
        return ''.join((rt.get('text') or {}).get('content', '') for rt in item['rich_text'])
    return default


def _rollup_date(prop):
    rollup = prop.get('rollup') or {}
    if (rollup.get('date') or {}).get('start'):
        return rollup['date']['start']
    item = _first_rollup_item(prop)
    return (item.get('date') or {}).get('start')


def transform_partner(page):
    """Turn a partners database page into a partner dict.

    Health score, trend and the update fields are formulas over the
    partner's update log; older pages expose them as rollups instead.
    """
    props = page.get('properties', {})

    name = props.get('Partner Name', {}).get('title') or []
    category = props.get('Category', {}).get('select') or {}
    contacts = props.get('Main Contact', {}).get('people') or []

    return {
        'id': page.get('id'),
        'partnerName': ((name[0].get('text') or {}).get('content') if name else None) or 'Untitled',
        'category': category.get('name') or 'Uncategorized',
        'mainContact': (contacts[0].get('name') if contacts else None) or 'Unassigned',
        'currentHealthScore': _formula_or_rollup_number(props.get('Current Health Score', {})),
        'trend': _formula_or_rollup_text(props.get('Trend', {}), default='→'),
        'lastUpdated': _rollup_date(props.get('Last Updated', {})),
        'keyUpdates': _formula_or_rollup_text(props.get('Key Updates', {})),
        'currentHurdles': _formula_or_rollup_text(props.get('Current Hurdles', {})),
        'actionItems': _formula_or_rollup_text(props.get('Action Items', {}))
    }


# ===================
# READ OPERATIONS
# ===================

def _query_database(database_id, query=None):
    """Every page matching the query, following pagination"""
    headers = _get_headers()
    query_url = f"{NOTION_API_BASE}/databases/{database_id}/query"

    pages = []
    cursor = None
    while True:
        body = dict(query or {}, page_size=100)
        if cursor:
            body['start_cursor'] = cursor

        try:
            response = httpx.post(query_url, headers=headers, json=body, timeout=30.0)
        except httpx.HTTPError as e:
            raise NotionError(f"Error querying Notion: {e}") from e
        data = _check_response(response)

        pages.extend(data.get('results', []))

        if not data.get('has_more'):
            break
        cursor = data.get('next_cursor')

    return pages


def get_goals():
    """Query every goal in the database, following pagination.

    Keeps Notion's own ordering. Raises NotionError on failure.
    """
    return [transform_goal(page) for page in _query_database(NOTION_DATABASE_ID)]


def get_focus_options():
    """Options of the goals database's Focus multi-select, as {name, color}.

    Raises NotionError if the schema can't be read or has no Focus
    multi-select.
    """
    database_url = f"{NOTION_API_BASE}/databases/{NOTION_DATABASE_ID}"
    try:
        response = httpx.get(database_url, headers=_get_headers(), timeout=10.0)
    except httpx.HTTPError as e:
        raise NotionError(f"Error reading Notion database: {e}") from e
    data = _check_response(response)

    focus = data.get('properties', {}).get('Focus') or {}
    if focus.get('type') != 'multi_select':
        raise NotionError('Focus property not found or not a multi-select')

    return [
        {'name': option.get('name'), 'color': option.get('color')}
        for option in focus.get('multi_select', {}).get('options', [])
    ]


def get_partners():
    """Active partners, sorted by category then name.

    Raises NotionError on failure or if no partners database is configured.
    """
    if not NOTION_PARTNERS_DATABASE_ID:
        raise NotionError('Partners database ID not configured')

    query = {
        'filter': {'property': 'Status', 'select': {'equals': 'Active'}},
        'sorts': [
            {'property': 'Category', 'direction': 'ascending'},
            {'property': 'Partner Name', 'direction': 'ascending'}
        ]
    }
    return [transform_partner(page) for page in _query_database(NOTION_PARTNERS_DATABASE_ID, query)]


# ===================
# WRITE OPERATIONS
# ===================

def _update_page(goal_id, properties):
    update_url = f"{NOTION_API_BASE}/pages/{goal_id}"
    try:
        response = httpx.patch(update_url, headers=_get_headers(), json={'properties': properties}, timeout=10.0)
    except httpx.HTTPError as e:
        raise NotionError(f"Error updating Notion page {goal_id}: {e}") from e
    return _check_response(response)


def update_goal_status(goal_id, status):
    """Set the Status of a goal. Returns the status Notion now holds."""
    page = _update_page(goal_id, {'Status': {'status': {'name': status}}})
    print(f"Updated goal {goal_id} status: {status}")
    return page.get('properties', {}).get('Status', {}).get('status', {}).get('name', status)


def update_goal_progress(goal_id, progress):
    """Set the Progress of a goal (progress is a 0-100 percentage).

    Returns the page's last edited time.
    """
    page = _update_page(goal_id, {'Progress': {'number': progress / 100}})
    print(f"Updated goal {goal_id} progress: {progress}%")
    return page.get('last_edited_time')


def record_checkin(goal_id, progress, went_well, challenges, completed_krs, today=None):
    """Write a weekly check-in onto the goal page.

    Used by the Slack check-in modal. Returns True on success, False otherwise
    since the check-in has already been posted to Slack by then.
    """
    today = today or date.today()
    properties = {
        'Progress': {'number': progress / 100},
        'Latest Update Date': {'date': {'start': today.isoformat()}},
        'Latest Update - What Went Well': {'rich_text': _rich_text(went_well)},
        'Latest Update - Challenges': {'rich_text': _rich_text(challenges)},
        'Latest Update - Completed KRs': {'rich_text': _rich_text(completed_krs)}
    }

    try:
        _update_page(goal_id, properties)
        print(f"Recorded check-in for goal {goal_id}: {progress}%")
        return True
    except NotionError as e:
        print(f"Error recording check-in in Notion: {e}")
        return False


def create_goal(title, quarter, focus, owner_notion_id):
    """Create a new goal page for the given quarter.

    Used when carrying a goal forward. Returns the new page ID.
    """
    goal_data = {
        'parent': {'database_id': NOTION_DATABASE_ID},
        'properties': {
            'Project': {'title': _rich_text(title)},
            'Quarter': {'select': {'name': quarter}},
            'Status': {'status': {'name': 'Not started'}},
            'Owner': {'people': [{'id': owner_notion_id}]},
            'Progress': {'number': 0},
            'Focus': {'multi_select': [{'name': focus}]},
            'Open KRs': {'rich_text': []},
            'Completed KRs': {'rich_text': []}
        }
    }

    create_url = f"{NOTION_API_BASE}/pages"
    try:
        response = httpx.post(create_url, headers=_get_headers(), json=goal_data, timeout=10.0)
    except httpx.HTTPError as e:
        raise NotionError(f"Error creating Notion page: {e}") from e
    page = _check_response(response)

    print(f"Created goal: {title} ({quarter})")
    return page.get('id')
