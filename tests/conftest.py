"""
Shared test fixtures for Gmail Sender Purge tests
"""

import io
import json

import pytest
from typing import Dict, List, Optional, Set
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpMockSequence
from rich.console import Console

from sender_purge.models import PurgeConfig


PERMISSION_DENIED_BODY = json.dumps({
    "error": {
        "code": 403,
        "message": "Request had insufficient authentication scopes.",
        "errors": [{
            "message": "Insufficient Permission",
            "domain": "global",
            "reason": "insufficientPermissions"
        }],
        "status": "PERMISSION_DENIED"
    }
}).encode()

SERVER_ERROR_BODY = json.dumps({
    "error": {"code": 500, "message": "Backend Error", "status": "INTERNAL"}
}).encode()

UNAUTHENTICATED_BODY = json.dumps({
    "error": {"code": 401, "message": "Invalid Credentials", "status": "UNAUTHENTICATED"}
}).encode()


# === Mock Gmail API Service ===

class MockHttpResponse:
    """Mock HTTP response for HttpError"""
    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason


def make_http_error(status: int, content: bytes = b'', reason: str = 'Error') -> HttpError:
    return HttpError(resp=MockHttpResponse(status, reason), content=content)


def permission_denied_error() -> HttpError:
    return make_http_error(403, PERMISSION_DENIED_BODY, 'Forbidden')


def server_error() -> HttpError:
    return make_http_error(500, SERVER_ERROR_BODY, 'Internal Server Error')


class MockRequest:
    """Mock for the request object; .execute() records the call and returns or raises"""
    def __init__(self, service, call: tuple, data=None, error: Optional[Exception] = None):
        self._service = service
        self._call = call
        self._data = data
        self._error = error

    def execute(self, http=None, num_retries=0):
        self._service.calls.append(self._call)
        self._service.http_used.append(http)
        if self._error is not None:
            raise self._error
        return self._data


class MockMessages:
    """Mock for users().messages()"""
    def __init__(self, service):
        self._service = service

    def list(self, userId: str, q: str = None, maxResults: int = 100, pageToken: Optional[str] = None):
        service = self._service
        service.list_page += 1
        call = ('list', q, pageToken)
        error = service.list_errors.get(service.list_page)
        if error is not None:
            return MockRequest(service, call, error=error)

        if service.pages is not None:
            return MockRequest(service, call, data=service.pages[service.list_page - 1])

        start_idx = int(pageToken) if pageToken else 0
        end_idx = min(start_idx + maxResults, len(service.message_ids))
        result = {'resultSizeEstimate': end_idx - start_idx}
        if end_idx > start_idx:
            result['messages'] = [
                {'id': message_id, 'threadId': f't_{message_id}'}
                for message_id in service.message_ids[start_idx:end_idx]
            ]
        if end_idx < len(service.message_ids):
            result['nextPageToken'] = str(end_idx)
        return MockRequest(service, call, data=result)

    def batchDelete(self, userId: str, body: Dict):
        service = self._service
        service.delete_calls += 1
        error = service.delete_errors.get(service.delete_calls)
        if error is None and service.deny_delete:
            error = permission_denied_error()
        if error is None:
            service.deleted.extend(body['ids'])
        return MockRequest(service, ('batchDelete', list(body['ids'])), data='', error=error)

    def batchModify(self, userId: str, body: Dict):
        service = self._service
        service.modify_calls += 1
        error = service.modify_errors.get(service.modify_calls)
        if error is None:
            service.trashed.extend(body['ids'])
        call = ('batchModify', list(body['ids']), body.get('addLabelIds'), body.get('removeLabelIds'))
        return MockRequest(service, call, data='', error=error)


class MockUsers:
    """Mock for service.users()"""
    def __init__(self, service):
        self._service = service
        self._messages = MockMessages(service)

    def getProfile(self, userId: str):
        service = self._service
        return MockRequest(
            service,
            ('getProfile',),
            data={'emailAddress': 'me@example.com', 'messagesTotal': len(service.message_ids)},
            error=service.profile_error
        )

    def messages(self):
        return self._messages


class MockGmailService:
    """Mock Gmail API service backed by a list of message ids

    Errors are keyed by the 1-based number of the call they apply to.
    """

    def __init__(
        self,
        message_ids: List[str] = None,
        pages: Optional[List[Dict]] = None,
        profile_error: Optional[Exception] = None,
        list_errors: Optional[Dict[int, Exception]] = None,
        delete_errors: Optional[Dict[int, Exception]] = None,
        modify_errors: Optional[Dict[int, Exception]] = None,
        deny_delete: bool = False
    ):
        self.message_ids = message_ids or []
        self.pages = pages
        self.profile_error = profile_error
        self.list_errors = list_errors or {}
        self.delete_errors = delete_errors or {}
        self.modify_errors = modify_errors or {}
        self.deny_delete = deny_delete

        self.calls: List[tuple] = []
        self.http_used: List[object] = []
        self.list_page = 0
        self.delete_calls = 0
        self.modify_calls = 0
        self.deleted: List[str] = []
        self.trashed: List[str] = []

    def users(self):
        return MockUsers(self)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    @property
    def removed(self) -> Set[str]:
        return set(self.deleted) | set(self.trashed)


class EndlessPagesService(MockGmailService):
    """Search that always claims there is another page"""

    def users(self):
        users = MockUsers(self)
        service = self

        class _Messages(MockMessages):
            def list(self, userId, q=None, maxResults=100, pageToken=None):
                service.list_page += 1
                data = {'messages': [{'id': f'loop_{service.list_page}'}], 'nextPageToken': 'again'}
                return MockRequest(service, ('list', q, pageToken), data=data)

        users._messages = _Messages(self)
        return users


# === Helpers ===

def make_ids(count: int, prefix: str = 'msg') -> List[str]:
    return [f'{prefix}_{i:05d}' for i in range(count)]


class FixedAnswer:
    """Confirmation provider that always gives the same answer"""
    def __init__(self, answer: str):
        self.answer = answer
        self.prompts: List[str] = []

    def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


# === Fixtures ===

@pytest.fixture
def test_config() -> PurgeConfig:
    """Default config with no pause between batches"""
    return PurgeConfig(pause_seconds=0)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def test_console(output) -> Console:
    """Console writing plain text to a buffer"""
    return Console(file=output, color_system=None, soft_wrap=True, width=200)


@pytest.fixture
def three_message_service() -> MockGmailService:
    return MockGmailService(['a1', 'a2', 'a3'])


@pytest.fixture
def gmail_responses(monkeypatch) -> List[tuple]:
    """Canned HTTP responses served to a real GmailService through HttpMockSequence

    Append (headers, body) pairs; both the read and batch connections consume them in order.
    """
    responses: List[tuple] = []
    monkeypatch.setattr(
        'sender_purge.gmail_service.httplib2.Http',
        lambda timeout=None: HttpMockSequence(responses)
    )
    return responses
