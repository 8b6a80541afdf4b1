"""
Fixtures for the remote (D1 API) client.

``d1_server`` is an in-memory stand-in for the HTTP endpoint: tests queue
JSON replies on it and inspect the requests it received.
"""
import json

import httpx
import pytest
from sqlitesource.client import RemoteClient

ENDPOINT = 'https://api.cloudflare.com/client/v4/accounts/test/d1/database/test/query'


class D1Server:

    def __init__(self):
        self.requests = []
        self.replies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else ok()
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def statements(self):
        return [json.loads(r.content)['sql'] for r in self.requests]


def ok(results=None, last_row_id=0, changes=0):
    return httpx.Response(200, json={
        'success': True,
        'errors': [],
        'messages': [],
        'result': [{
            'results': results or [],
            'success': True,
            'meta': {'last_row_id': last_row_id, 'changes': changes},
        }],
    })


def failed(message, status=400):
    return httpx.Response(status, json={
        'success': False,
        'errors': [{'code': 7500, 'message': message}],
        'messages': [],
        'result': [],
    })


@pytest.fixture
def d1_server():
    return D1Server()


@pytest.fixture
def d1_client(d1_server):
    http = httpx.AsyncClient(transport=httpx.MockTransport(d1_server),
                             headers={'Authorization': 'Bearer test-token'})
    return RemoteClient(http, ENDPOINT)
