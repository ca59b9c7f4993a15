"""
Tests for the check-ins service: sending rounds and Slack interactivity.
"""

import json
from datetime import datetime
from urllib.parse import urlencode
from zoneinfo import ZoneInfo

import pytest

from conftest import make_page

AUG_25 = datetime(2025, 8, 25, 10, 0, tzinfo=ZoneInfo('America/New_York'))


@pytest.fixture
def client(checkins, monkeypatch):
    monkeypatch.setattr(checkins, 'now_in_org_timezone', lambda: AUG_25)
    return checkins.app.test_client()


class TestSendCheckins:

    def test_with_goals_in_body(self, client, fake_slack):
        goals = [{'id': 'p1', 'title': 'Launch', 'quarter': 'Q3', 'owner': 'Jimmy Buffi', 'completion': 10}]
        data = client.post('/slack/send-checkins', json={'goals': goals, 'quarterProgress': 60}).get_json()
        assert data == {'success': True, 'sentCount': 1, 'totalOwners': 1}
        assert "We're 60% through Q3" in fake_slack.posted[0]['blocks'][1]['text']['text']

    @pytest.mark.parametrize('quarter_progress', ['60', True, [60]])
    def test_quarter_progress_must_be_a_number(self, client, fake_slack, quarter_progress):
        goals = [{'id': 'p1', 'title': 'Launch', 'quarter': 'Q3', 'owner': 'Jimmy Buffi', 'completion': 10}]
        response = client.post('/slack/send-checkins', json={'goals': goals, 'quarterProgress': quarter_progress})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'quarterProgress must be a number'
        assert fake_slack.posted == []

    def test_fetches_current_quarter_goals(self, client, fake_notion, fake_slack):
        fake_notion.pages = [
            make_page('p1', 'Launch', 'Jimmy Buffi', quarter='Q3'),
            make_page('p2', 'Hire', 'Robert Calise', quarter='Q3'),
            make_page('p3', 'Later', 'Jimmy Buffi', quarter='Q4')
        ]
        data = client.post('/slack/send-checkins').get_json()
        assert (data['sentCount'], data['totalOwners']) == (2, 2)
        assert sorted(m['channel'] for m in fake_slack.posted) == ['U001', 'U002']

    def test_notion_failure(self, client, fake_notion):
        fake_notion.fail_with = 500
        response = client.post('/slack/send-checkins')
        assert response.status_code == 500
        assert response.get_json()['error'] == 'Failed to fetch goals data'

    def test_no_slack_token(self, client, checkins, monkeypatch):
        monkeypatch.setattr(checkins, 'get_client', lambda: None)
        assert client.post('/slack/send-checkins').status_code == 500


def _form(payload):
    return {
        'data': urlencode({'payload': json.dumps(payload)}),
        'content_type': 'application/x-www-form-urlencoded'
    }


class TestInteractive:

    def test_button_opens_modal(self, client, fake_slack):
        payload = {
            'type': 'block_actions',
            'trigger_id': 'T1',
            'actions': [{
                'action_id': 'start_checkin',
                'value': json.dumps({'goalId': 'p1', 'goalTitle': 'Launch', 'currentProgress': 10, 'expectedProgress': 49})
            }]
        }
        response = client.post('/slack/interactive', **_form(payload))
        assert response.get_json() == {'success': True}
        assert fake_slack.opened[0]['view']['callback_id'] == 'goal_checkin'

    def test_submission_records_and_replies(self, client, fake_slack, fake_notion):
        payload = {
            'type': 'view_submission',
            'user': {'id': 'U001', 'name': 'jimmy'},
            'view': {
                'private_metadata': json.dumps({'goalId': 'p1', 'goalTitle': 'Launch', 'currentProgress': 10}),
                'state': {'values': {
                    'went_well': {'went_well_input': {'value': 'Beta out'}},
                    'challenges': {'challenges_input': {'value': 'None'}},
                    'completed_krs': {'completed_krs_input': {'value': None}},
                    'progress_estimate': {'progress_input': {'value': '35'}}
                }}
            }
        }
        response = client.post('/slack/interactive', **_form(payload))

        assert response.status_code == 200
        assert response.get_json() == {}
        assert [m['channel'] for m in fake_slack.posted] == ['C-TEAM', 'U001']
        method, url, body = fake_notion.requests[0]
        assert url.endswith('/pages/p1')
        assert body['properties']['Progress'] == {'number': 0.35}

    def test_submission_still_closes_modal_when_notion_fails(self, client, fake_slack, fake_notion):
        fake_notion.fail_with = 500
        payload = {
            'type': 'view_submission',
            'user': {'id': 'U001'},
            'view': {'private_metadata': json.dumps({'goalId': 'p1'}), 'state': {'values': {}}}
        }
        response = client.post('/slack/interactive', **_form(payload))
        assert response.get_json() == {}
        assert fake_slack.posted[-1]['channel'] == 'U001'

    def test_partner_button_is_acknowledged(self, client, fake_slack):
        payload = {
            'type': 'block_actions',
            'trigger_id': 'T2',
            'actions': [{'action_id': 'partner_update_button', 'value': json.dumps({'partnerId': 'pa1'})}]
        }
        response = client.post('/slack/interactive', **_form(payload))
        assert response.get_json() == {'success': True}
        assert fake_slack.opened == []

    def test_json_body(self, client):
        response = client.post('/slack/interactive', json={'type': 'shortcut'})
        assert response.get_json() == {'success': True}

    def test_garbage_body(self, client):
        response = client.post('/slack/interactive', data='payload=not-json',
                               content_type='application/x-www-form-urlencoded')
        assert response.status_code == 400
