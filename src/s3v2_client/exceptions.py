from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .transport import BufferedHttpResponse

REQUEST_ID_HEADER = "x-amzn-requestid"
S3_REQUEST_ID_HEADER = "x-amz-request-id"


class S3Error(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

    def __str__(self) -> str:
        if self.status_code and self.error_code:
            return f"{self.error_code} ({self.status_code}): {self.message}"
        elif self.status_code:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class S3ServiceError(S3Error):
    """A service error the operation knows how to name."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(message, status_code, error_code)
        self.request_id = request_id


class BucketAlreadyExistsError(S3ServiceError):
    pass


class BucketAlreadyOwnedByYouError(S3ServiceError):
    pass


class S3HttpDispatchError(S3Error):
    pass


class S3CredentialsError(S3Error):
    pass


class S3ValidationError(S3Error, ValueError):
    pass


class ParseRegionError(S3ValidationError):
    def __init__(self, value: str):
        super().__init__(f"Not a valid AWS region: {value}")
        self.value = value


class S3ParseError(S3Error):
    pass


class S3UnknownError(S3Error):
    """Non-success response that did not match any known service error."""

    def __init__(self, response: BufferedHttpResponse):
        self.response = response
        super().__init__(
            f"Request ID: {self.request_id} Body: {response.body_as_str()}",
            status_code=response.status,
        )

    @property
    def request_id(self) -> str | None:
        headers = self.response.headers
        return headers.get(REQUEST_ID_HEADER) or headers.get(S3_REQUEST_ID_HEADER)


class S3BlockingError(S3Error):
    def __init__(self, message: str = "Failed to run blocking future"):
        super().__init__(message)
