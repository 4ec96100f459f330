import collections

import pytest
from multidict import CIMultiDict

from s3v2_client.client import S3Client
from s3v2_client.credentials import StaticProvider
from s3v2_client.regions import Region
from s3v2_client.transport import BufferedHttpResponse


class MockResponse:
    def __init__(self, status: int, headers: dict | None, body: bytes):
        self.status = status
        self.headers = CIMultiDict(headers or {})
        self.body = body
        self.closed = False

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    async def read(self) -> bytes:
        return self.body

    async def buffer(self) -> BufferedHttpResponse:
        return BufferedHttpResponse(self.status, CIMultiDict(self.headers), self.body)

    def close(self):
        self.closed = True


class MockDispatcher:
    """Records dispatched requests and replays queued responses in order."""

    def __init__(self):
        self._responses = collections.deque()
        self.requests = []
        self.closed = False

    async def dispatch(self, request, timeout=None):
        self.requests.append(request)
        if self._responses:
            return self._responses.popleft()
        raise ValueError("No more responses available in the mock dispatcher.")

    async def close(self):
        self.closed = True

    def add_response(
        self,
        response: str | bytes = b"",
        headers: dict | None = None,
        status: int = 200,
    ):
        body = response.encode() if isinstance(response, str) else response
        self._responses.append(MockResponse(status, headers, body))


class MockClient(S3Client):
    def __init__(self, region=Region.US_EAST_1, credentials_provider=None):
        self.mock_dispatcher = MockDispatcher()
        super().__init__(
            region,
            credentials_provider=credentials_provider
            or StaticProvider("test-access-key", "test-secret-key"),
            dispatcher=self.mock_dispatcher,
        )

    @property
    def requests(self):
        return self.mock_dispatcher.requests

    def add_response(self, response="", headers=None, status=200):
        self.mock_dispatcher.add_response(response, headers, status)


@pytest.fixture
def mock_dispatcher():
    return MockDispatcher()


@pytest.fixture
def mock_client():
    return MockClient()


@pytest.fixture
def make_mock_client():
    return MockClient
