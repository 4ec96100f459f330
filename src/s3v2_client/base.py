import logging
import pathlib
from collections.abc import Callable
from typing import Self

from .credentials import ChainProvider, CredentialsProvider, ProfileProvider
from .exceptions import S3CredentialsError, S3ValidationError
from .regions import AnyRegion, CustomRegion, resolve_default_region
from .request import SignedRequest
from .transport import (
    AiohttpDispatcher,
    BufferedHttpResponse,
    HttpDispatcher,
    HttpResponse,
)
from .urlparsing import is_valid_s3_bucket_name

logger = logging.getLogger(__name__)

ErrorClassifier = Callable[[BufferedHttpResponse], Exception]


class _S3ClientBase:
    service = "s3"

    def __init__(
        self,
        region: AnyRegion | str | None = None,
        credentials_provider: CredentialsProvider | None = None,
        dispatcher: HttpDispatcher | None = None,
    ):
        if region is None:
            region = resolve_default_region(profile_reader=ProfileProvider().region)
        self.region = resolve_default_region(region)
        self.credentials_provider = credentials_provider or ChainProvider()
        self.dispatcher = dispatcher or AiohttpDispatcher()

    @classmethod
    def from_aws_config(
        cls,
        profile_name: str = "default",
        config_path: str | pathlib.Path | None = None,
        credentials_path: str | pathlib.Path | None = None,
        endpoint_url: str | None = None,
    ) -> Self:
        profile = ProfileProvider(profile_name, config_path, credentials_path)

        profile_region = profile.region()
        region = resolve_default_region(profile_region)

        endpoint_url = endpoint_url or profile.endpoint_url()
        if endpoint_url:
            region = CustomRegion(region.region_name, endpoint_url)

        return cls(region, credentials_provider=profile)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self.dispatcher.close()

    def _new_request(self, method: str, path: str) -> SignedRequest:
        return SignedRequest(method, self.service, self.region, path)

    @staticmethod
    def _validate_bucket(bucket: str) -> None:
        if not is_valid_s3_bucket_name(bucket):
            raise S3ValidationError(f"Invalid bucket name '{bucket}'")

    async def _sign_and_dispatch(
        self,
        request: SignedRequest,
        classify: ErrorClassifier,
        timeout: float | None = None,
    ) -> HttpResponse:
        try:
            credentials = await self.credentials_provider.credentials()
        except S3CredentialsError:
            raise
        except Exception as e:
            raise S3CredentialsError(f"Failed to load credentials: {e}") from e

        request.sign(credentials)
        response = await self.dispatcher.dispatch(request, timeout=timeout)

        if not response.is_success:
            buffered = await response.buffer()
            logger.debug(
                "%s %s failed with HTTP %s",
                request.method,
                request.path,
                buffered.status,
            )
            raise classify(buffered)

        return response
