# Control Tower Check-ins
# Weekly Slack check-ins and the Slack interactivity endpoint

import sys
import os

# Add parent directory to path for shared imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json

from flask import Flask, request, jsonify
from slack_sdk.errors import SlackApiError

from tower import (
    ConfigStore,
    NotionError,
    SLACK_CHANNEL_ID,
    get_goals,
    record_checkin,
    resolve_quarter,
    now_in_org_timezone
)
from tower.slack import (
    get_client,
    filter_current_quarter,
    send_checkins as send_goal_checkins,
    parse_interaction_payload,
    open_checkin_modal,
    handle_checkin_submission
)

app = Flask(__name__)

store = ConfigStore()


@app.route('/slack/send-checkins', methods=['POST'])
def send_checkins():
    """Send every goal owner their weekly check-in DMs.

    Accepts (optional):
        - goals: Goals to check in on
        - quarterProgress: Percentage through the quarter

    Without both, goals are fetched from Notion and filtered to the
    current quarter.

    Returns:
        - sentCount: Owners who were messaged
        - totalOwners: Owners with goals this round
    """
    client = get_client()
    if not client:
        return jsonify({'error': 'Slack bot token not configured'}), 500

    data = request.get_json(silent=True) or {}
    goals = data.get('goals')
    quarter_progress = data.get('quarterProgress')

    if quarter_progress is not None:
        if isinstance(quarter_progress, bool) or not isinstance(quarter_progress, (int, float)):
            return jsonify({'error': 'quarterProgress must be a number'}), 400

    if not isinstance(goals, list) or quarter_progress is None:
        try:
            all_goals = get_goals()
        except NotionError as e:
            print(f"Error fetching goals data: {e}")
            return jsonify({'error': 'Failed to fetch goals data', 'details': str(e)}), 500

        resolved = resolve_quarter(now_in_org_timezone(), store.get_quarterly_config())
        goals = filter_current_quarter(all_goals, resolved['quarter'])
        quarter_progress = resolved['progress'] * 100
        print(f"Fetched {len(all_goals)} goals, {len(goals)} in {resolved['quarter']}")

    sent, owners = send_goal_checkins(client, goals, quarter_progress, store.get_employees())

    return jsonify({
        'success': True,
        'sentCount': sent,
        'totalOwners': owners
    })


@app.route('/slack/interactive', methods=['POST'])
def interactive():
    """Slack interactivity: check-in buttons and modal submissions.

    Modal submissions are always answered with an empty body so Slack
    closes the modal, even if saving the check-in fails.
    """
    client = get_client()
    if not client:
        return jsonify({'error': 'Slack bot token not configured'}), 500

    try:
        payload = parse_interaction_payload(request.get_data(), request.form)
    except (ValueError, TypeError) as e:
        print(f"Error parsing Slack payload: {e}")
        return jsonify({'error': 'Invalid Slack payload', 'details': str(e)}), 400

    payload_type = payload.get('type') if isinstance(payload, dict) else None

    if payload_type == 'view_submission':
        try:
            handle_checkin_submission(client, payload, SLACK_CHANNEL_ID, record_checkin)
        except (SlackApiError, KeyError, ValueError) as e:
            print(f"Error handling check-in submission: {e}")
        return jsonify({})

    if payload_type == 'block_actions':
        try:
            open_checkin_modal(client, payload)
        except (SlackApiError, KeyError, json.JSONDecodeError) as e:
            print(f"Error opening check-in modal: {e}")
            return jsonify({'error': 'Failed to open check-in', 'details': str(e)}), 500

    return jsonify({'success': True})


@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'Control Tower Check-ins',
        'version': '1.0'
    })


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    app.run(host='0.0.0.0', port=port)
