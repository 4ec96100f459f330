"""HTTP dispatch of signed requests over aiohttp."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy

from .exceptions import S3HttpDispatchError
from .request import SignedRequest
from .urlparsing import build_url

logger = logging.getLogger(__name__)


@dataclass
class BufferedHttpResponse:
    status: int
    headers: CIMultiDict[str] = field(default_factory=CIMultiDict)
    body: bytes = b""

    def body_as_str(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class HttpResponse:
    """A response whose body has not been read yet."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response
        self.status = response.status
        self.headers: CIMultiDictProxy[str] = response.headers

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    async def read(self) -> bytes:
        try:
            return await self._response.read()
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            raise S3HttpDispatchError(f"Error reading response body: {e}") from e
        finally:
            self._response.release()

    async def buffer(self) -> BufferedHttpResponse:
        body = await self.read()
        return BufferedHttpResponse(self.status, CIMultiDict(self.headers), body)

    def close(self) -> None:
        self._response.close()


class HttpDispatcher(Protocol):
    async def dispatch(
        self, request: SignedRequest, timeout: float | None = None
    ) -> HttpResponse: ...

    async def close(self) -> None: ...


class AiohttpDispatcher:
    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(auto_decompress=False)
        return self._session

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def dispatch(
        self, request: SignedRequest, timeout: float | None = None
    ) -> HttpResponse:
        session = await self._ensure_session()

        url = build_url(
            request.scheme,
            request.hostname,
            request.canonical_uri,
            request.canonical_query_string,
        )
        headers = CIMultiDict(request.header_items())

        logger.debug("Dispatching %s %s", request.method, url)
        try:
            response = await session.request(
                request.method,
                url,
                headers=headers,
                data=request.payload,
                # an unsigned default Content-Type would break the signature
                skip_auto_headers=("Content-Type",),
                timeout=aiohttp.ClientTimeout(total=timeout),
            )
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            raise S3HttpDispatchError(
                f"Error dispatching {request.method} {url}: {e}"
            ) from e

        logger.debug(
            "Response status %s for %s %s", response.status, request.method, url
        )
        return HttpResponse(response)
