"""Asyncio S3 client signing requests with AWS Signature Version 2."""

__version__ = "0.1.0"

from .client import S3Client
from .credentials import (
    ChainProvider,
    Credentials,
    EnvironmentProvider,
    ProfileProvider,
    StaticProvider,
)
from .exceptions import (
    BucketAlreadyExistsError,
    BucketAlreadyOwnedByYouError,
    ParseRegionError,
    S3CredentialsError,
    S3Error,
    S3HttpDispatchError,
    S3ParseError,
    S3ServiceError,
    S3UnknownError,
    S3ValidationError,
)
from .regions import CustomRegion, Region
from .request import SignedRequest
from .stream import ByteStream

__all__ = [
    "S3Client",
    "Region",
    "CustomRegion",
    "Credentials",
    "StaticProvider",
    "EnvironmentProvider",
    "ProfileProvider",
    "ChainProvider",
    "SignedRequest",
    "ByteStream",
    "S3Error",
    "S3ServiceError",
    "BucketAlreadyExistsError",
    "BucketAlreadyOwnedByYouError",
    "S3HttpDispatchError",
    "S3CredentialsError",
    "S3ValidationError",
    "ParseRegionError",
    "S3ParseError",
    "S3UnknownError",
]
