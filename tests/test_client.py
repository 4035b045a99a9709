"""
JSON API client used by editor sessions and autosave.
"""

import pytest
import requests

from services.letters import DraftApiClient, LayoutEditor, LetterError, SaveError


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {}
        self.text = str(self._body)

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.requests = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.requests.append({'method': method, 'url': url, 'headers': headers, **kwargs})
        if self.error:
            raise self.error
        return self.responses.pop(0)


class TestDraftApiClient:

    def test_bearer_token_and_url(self):
        session = FakeSession(FakeResponse(body={'id': 3}))
        client = DraftApiClient('http://localhost:5005/', token='tok', session=session)

        assert client.get_draft(3) == {'id': 3}
        sent = session.requests[0]
        assert sent['method'] == 'GET'
        assert sent['url'] == 'http://localhost:5005/drafts/3'
        assert sent['headers']['Authorization'] == 'Bearer tok'

    def test_update_draft_sends_partial_json(self):
        session = FakeSession(FakeResponse(body={'id': 3, 'subject': 'New'}))
        DraftApiClient('http://api', session=session).update_draft(3, subject='New')
        assert session.requests[0]['method'] == 'PATCH'
        assert session.requests[0]['json'] == {'subject': 'New'}

    def test_http_error_carries_server_message(self):
        session = FakeSession(FakeResponse(409, {'success': False, 'error': 'Draft is final'}))
        with pytest.raises(SaveError) as exc:
            DraftApiClient('http://api', session=session).update_draft(3, subject='x')
        assert str(exc.value) == 'Draft is final'
        assert exc.value.status_code == 409

    def test_network_error(self):
        session = FakeSession(error=requests.ConnectionError('refused'))
        with pytest.raises(SaveError):
            DraftApiClient('http://api', session=session).finalize(3)

    def test_read_errors_are_letter_errors(self):
        session = FakeSession(FakeResponse(404, {'success': False, 'error': 'Draft not found'}))
        with pytest.raises(LetterError) as exc:
            DraftApiClient('http://api', session=session).get_draft(99)
        assert not isinstance(exc.value, SaveError)

    def test_editor_persists_through_client(self):
        session = FakeSession(FakeResponse(body={'id': 5}))
        editor = LayoutEditor(gateway=DraftApiClient('http://api', session=session))
        editor.toggle_hidden('ref')
        editor.persist(5)

        sent = session.requests[0]
        assert sent['method'] == 'PATCH'
        assert sent['url'] == 'http://api/drafts/5'
        assert sent['json']['layout']['ref'] == {'x': 20, 'y': 50, 'hidden': True}
        assert len(sent['json']['layout']) == 9
