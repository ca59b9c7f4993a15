"""
Shared fixtures: the three Flask services loaded from their app.py files,
a config store in a temp directory, and fake Notion / Slack backends.
"""

import importlib.util
import os
import sys

import httpx
import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

import tower.notion as notion
from tower import ConfigStore

PARTNERS_DATABASE_ID = 'partners-db'


def _load_service(name):
    """Import <name>/app.py under a unique module name"""
    module_name = f"{name}_app"
    if module_name in sys.modules:
        return sys.modules[module_name]
    spec = importlib.util.spec_from_file_location(module_name, os.path.join(ROOT, name, 'app.py'))
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


class FakeSlack:
    """Records calls the way slack_sdk.WebClient would receive them"""

    def __init__(self, members=None):
        self.members = members or []
        self.posted = []
        self.opened = []

    def users_list(self, cursor=None):
        return {'ok': True, 'members': self.members, 'response_metadata': {'next_cursor': ''}}

    def chat_postMessage(self, **kwargs):
        self.posted.append(kwargs)
        return {'ok': True}

    def views_open(self, **kwargs):
        self.opened.append(kwargs)
        return {'ok': True}


class FakeNotion:
    """Stands in for the Notion REST API behind httpx.get / post / patch"""

    def __init__(self, pages=None):
        self.pages = pages or []
        self.partner_pages = []
        self.focus_options = [{'name': 'Product', 'color': 'green'}, {'name': 'MLB Teams', 'color': 'blue'}]
        self.requests = []
        self.fail_with = None

    def _response(self, method, url, payload):
        request = httpx.Request(method, url)
        if self.fail_with:
            return httpx.Response(self.fail_with, text='notion says no', request=request)
        return httpx.Response(200, json=payload, request=request)

    def post(self, url, headers=None, json=None, timeout=None):
        self.requests.append(('POST', url, json))
        if url.endswith(f"/{PARTNERS_DATABASE_ID}/query"):
            return self._response('POST', url, {'results': self.partner_pages, 'has_more': False})
        if url.endswith('/query'):
            return self._response('POST', url, {'results': self.pages, 'has_more': False})
        return self._response('POST', url, {'id': 'new-page-id'})

    def get(self, url, headers=None, timeout=None):
        self.requests.append(('GET', url, None))
        return self._response('GET', url, {
            'id': url.rsplit('/', 1)[-1],
            'properties': {
                'Focus': {'type': 'multi_select', 'multi_select': {'options': self.focus_options}}
            }
        })

    def patch(self, url, headers=None, json=None, timeout=None):
        self.requests.append(('PATCH', url, json))
        properties = json.get('properties', {})
        status = properties.get('Status', {}).get('status', {}).get('name', 'Not started')
        return self._response('PATCH', url, {
            'id': url.rsplit('/', 1)[-1],
            'last_edited_time': '2025-08-25T14:00:00.000Z',
            'properties': {'Status': {'status': {'name': status}}}
        })


def make_page(page_id, title, owner, quarter='Q3', progress=0.5, status='In progress'):
    return {
        'id': page_id,
        'last_edited_time': '2025-08-20T09:30:00.000Z',
        'properties': {
            'Project': {'title': [{'plain_text': title}]},
            'Quarter': {'select': {'name': quarter}},
            'Status': {'status': {'name': status}},
            'Owner': {'people': [{'name': owner}]},
            'Progress': {'number': progress},
            'Focus': {'multi_select': [{'name': 'Growth'}, {'name': 'Product'}]},
            'Key Results': {'rich_text': [{'plain_text': 'Ship '}, {'plain_text': 'v2'}]},
            'Completed KRs': {'rich_text': []}
        }
    }


def make_partner_page(page_id, name, contact, category='MLB', health=7, trend='↑'):
    return {
        'id': page_id,
        'properties': {
            'Partner Name': {'title': [{'text': {'content': name}}]},
            'Category': {'select': {'name': category}},
            'Main Contact': {'people': [{'name': contact}] if contact else []},
            'Current Health Score': {'formula': {'type': 'number', 'number': health}},
            'Trend': {'formula': {'type': 'string', 'string': trend}},
            'Last Updated': {'rollup': {'type': 'date', 'date': {'start': '2025-08-15'}}},
            'Key Updates': {'formula': {'string': 'Renewed for 2026'}},
            'Current Hurdles': {'formula': {'string': ''}},
            'Action Items': {'formula': {'string': 'Send report'}}
        }
    }


@pytest.fixture
def store(tmp_path):
    return ConfigStore(str(tmp_path / 'config'))


@pytest.fixture
def fake_notion(monkeypatch):
    fake = FakeNotion()
    monkeypatch.setattr(notion, 'NOTION_TOKEN', 'secret-test-token')
    monkeypatch.setattr(notion, 'NOTION_PARTNERS_DATABASE_ID', PARTNERS_DATABASE_ID)
    monkeypatch.setattr(notion.httpx, 'post', fake.post)
    monkeypatch.setattr(notion.httpx, 'patch', fake.patch)
    monkeypatch.setattr(notion.httpx, 'get', fake.get)
    return fake


@pytest.fixture
def fake_slack():
    return FakeSlack(members=[
        {'id': 'U001', 'name': 'jimmybuffi', 'real_name': 'Jimmy Buffi', 'profile': {'display_name': 'jimmy'}},
        {'id': 'U002', 'name': 'bob', 'real_name': 'Bob Calise', 'profile': {'display_name': 'Bob'}},
        {'id': 'U003', 'name': 'ghost', 'real_name': 'Evan Demchick', 'deleted': True, 'profile': {}},
        {'id': 'B001', 'name': 'towerbot', 'real_name': 'Evan Demchick', 'is_bot': True, 'profile': {}}
    ])


@pytest.fixture
def dashboard(monkeypatch, store, fake_slack):
    module = _load_service('dashboard')
    monkeypatch.setattr(module, 'store', store)
    monkeypatch.setattr(module, 'get_client', lambda: fake_slack)
    return module


@pytest.fixture
def admin(monkeypatch, store, fake_slack):
    module = _load_service('admin')
    monkeypatch.setattr(module, 'store', store)
    monkeypatch.setattr(module, 'get_client', lambda: fake_slack)
    return module


@pytest.fixture
def checkins(monkeypatch, store, fake_slack):
    module = _load_service('checkins')
    monkeypatch.setattr(module, 'store', store)
    monkeypatch.setattr(module, 'get_client', lambda: fake_slack)
    monkeypatch.setattr(module, 'SLACK_CHANNEL_ID', 'C-TEAM')
    return module
