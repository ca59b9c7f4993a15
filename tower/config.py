# Control Tower Config
# Central configuration for all Control Tower apps

import os

# Notion
NOTION_TOKEN = os.environ.get('NOTION_TOKEN')
NOTION_DATABASE_ID = os.environ.get('NOTION_DATABASE_ID', '238ee4a677df80c18e68d094de3fd6d6')
NOTION_API_BASE = 'https://api.notion.com/v1'
NOTION_VERSION = '2022-06-28'
NOTION_PARTNERS_DATABASE_ID = os.environ.get('NOTION_PARTNERS_DATABASE_ID')

# Slack
SLACK_BOT_TOKEN = os.environ.get('SLACK_BOT_TOKEN')
SLACK_CHANNEL_ID = os.environ.get('SLACK_CHANNEL_ID')

# Linked from Slack messages
DASHBOARD_URL = os.environ.get('DASHBOARD_URL', 'http://localhost:3000')

# Config documents (JSON files, one per key)
CONFIG_DIR = os.environ.get('CONTROL_TOWER_CONFIG_DIR', os.path.join(os.getcwd(), 'config'))

# Check-ins run on organisation time
ORG_TIMEZONE = 'America/New_York'

# Goal "quarters" that are never part of a check-in round
EXCLUDED_QUARTERS = ['Non Priorities', 'Not Prioritized', 'Backlog']

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

# Default documents
DEFAULT_QUARTERS = {
    'Q1': {'start': {'month': 1, 'day': 11}, 'end': {'month': 4, 'day': 10, 'crossesYearBoundary': False}},
    'Q2': {'start': {'month': 4, 'day': 11}, 'end': {'month': 7, 'day': 10, 'crossesYearBoundary': False}},
    'Q3': {'start': {'month': 7, 'day': 11}, 'end': {'month': 10, 'day': 10, 'crossesYearBoundary': False}},
    'Q4': {'start': {'month': 10, 'day': 11}, 'end': {'month': 1, 'day': 10, 'crossesYearBoundary': True}}
}

FALLBACK_ADMIN_EMAILS = ['edemchick@rebootmotion.com', 'jbuffi@rebootmotion.com']

DEFAULT_ADMIN_CONFIG = {
    'adminEmails': FALLBACK_ADMIN_EMAILS,
    'atRiskThreshold': 15,  # percentage points behind expected progress
    'checkInTime': {
        'hour': 10,
        'timezone': ORG_TIMEZONE
    }
}

DEFAULT_EMPLOYEE_CONFIG = {
    'employees': [
        {'name': 'Jimmy Buffi', 'notionUserId': '0e594686-ffd9-424b-9daa-0306638a2221', 'email': 'jbuffi@rebootmotion.com'},
        {'name': 'Evan Demchick', 'notionUserId': '46ee46c2-f482-48a5-8078-95cfc93815a1', 'email': 'edemchick@rebootmotion.com'},
        {'name': 'Robert Calise', 'slackName': 'Bob Calise', 'notionUserId': '6c9ff824-2dd2-4e19-b5b8-6051d56966fe', 'email': 'rcalise@rebootmotion.com'},
        {'name': 'Creagor Elsom', 'notionUserId': '33227521-8428-4238-94e0-53401caa529b', 'email': 'celsom@rebootmotion.com'},
        {'name': 'Jacob Howenstein', 'notionUserId': '9b1d8a2c-2dfe-4fe7-a9a4-9fb330396bd3', 'email': 'jhowenstein@rebootmotion.com'}
    ]
}

DEFAULT_SCHEDULE = {
    'day': 'Monday',
    'enabled': False
}

DEFAULT_PARTNER_SCHEDULE = {
    'day': 'Friday',
    'enabled': False
}

# Used when the goals database schema can't be read
FALLBACK_FOCUS_OPTIONS = [
    {'name': 'MLB Teams', 'color': 'blue'},
    {'name': 'NBA Teams', 'color': 'purple'},
    {'name': 'Product', 'color': 'green'},
    {'name': 'Infrastructure', 'color': 'orange'}
]

# Quarter prep checklist: every item starts unchecked for each quarter
PREP_CHECKLIST_ITEMS = [
    'reviewPreviousQuarter',
    'analyzeMetrics',
    'identifyImprovements',
    'setNewGoals',
    'planResources',
    'discussHiringNeeds',
    'scheduleReviews',
    'communicateChanges'
]

DEFAULT_PREP_CHECKLIST = {
    quarter: {item: False for item in PREP_CHECKLIST_ITEMS}
    for quarter in ['Q1', 'Q2', 'Q3', 'Q4']
}
