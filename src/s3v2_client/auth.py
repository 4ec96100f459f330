"""AWS Signature Version 2 authentication for S3.

Canonicalization helpers shared with ``SignedRequest.complement()`` and the
signer itself. Paths are expected unencoded, encoding happens here.
"""

import base64
import datetime as dt
import hashlib
import hmac
import logging
import urllib.parse
from collections.abc import Iterable, Mapping

from .credentials import Credentials
from .regions import AnyRegion, CustomRegion
from .urlparsing import extract_endpoint_path

logger = logging.getLogger(__name__)

AUTH_SCHEME = "AWS"
METADATA_PREFIX = "x-amz-"
SECURITY_TOKEN_HEADER = "x-amz-security-token"

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = "Jan Feb Mar Apr May Jun Jul Aug Sep Oct Nov Dec".split()


def encode_uri_path(uri: str) -> str:
    # urllib leaves only RFC 3986 unreserved characters (A-Za-z0-9-._~) and "safe"
    return urllib.parse.quote(uri, safe="/")


def encode_uri_strict(uri: str) -> str:
    return urllib.parse.quote(uri, safe="")


def canonical_uri(path: str, region: AnyRegion) -> str:
    endpoint_path = None
    if isinstance(region, CustomRegion):
        endpoint_path = extract_endpoint_path(region.endpoint)

    if not path:
        return endpoint_path or "/"
    if endpoint_path:
        return encode_uri_path(endpoint_path + path)
    return encode_uri_path(path)


def build_canonical_query_string(params: Mapping[str, str | None]) -> str:
    parts = []
    for key in sorted(params):
        value = params[key]
        if value is None:
            parts.append(encode_uri_strict(key))
        else:
            parts.append(f"{encode_uri_strict(key)}={encode_uri_strict(value)}")
    return "&".join(parts)


def canonical_headers(headers: Mapping[str, Iterable[str]]) -> str:
    """Metadata headers as sorted "key:v1,v2" lines, without a trailing newline."""
    lines = [
        f"{key}:{','.join(headers[key])}"
        for key in sorted(headers)
        if key.startswith(METADATA_PREFIX)
    ]
    return "\n".join(lines)


def canonical_resource(uri: str, query_string: str) -> str:
    if uri:
        segments = uri.removeprefix("/").split("/")
        uri = "/" + "/".join(segments)
        # Legacy servers verify "/bucket/" for a lone bucket segment.
        if len(segments) == 1 and segments[0]:
            uri += "/"
    else:
        uri = "/"

    if query_string:
        return f"{uri}?{query_string}"
    return uri


def rfc1123(date: dt.datetime) -> str:
    """Formats like "Wed, 1 Jan 2020 0:0:0 GMT"; only the year is padded."""
    date = date.astimezone(dt.UTC) if date.tzinfo else date
    return (
        f"{_WEEKDAYS[date.weekday()]}, {date.day} {_MONTHS[date.month - 1]} "
        f"{date.year} {date.hour}:{date.minute}:{date.second} GMT"
    )


def string_to_sign(
    method: str,
    content_md5: str,
    content_type: str,
    date: str,
    canonical_headers: str,
    canonical_resource: str,
) -> str:
    parts = [method, content_md5, content_type, date]
    if canonical_headers:
        parts.append(canonical_headers)
    parts.append(canonical_resource)
    return "\n".join(parts)


def sign_string(data: str, secret_key: str) -> str:
    digest = hmac.new(secret_key.encode(), data.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def sign_request(request, credentials: Credentials, now: dt.datetime | None = None):
    """Adds Date and Authorization headers to a SignedRequest.

    A request that is already signed (Authorization header or a "signature"
    query parameter) is left alone while its credentials are still valid, so
    it can be resubmitted after a redirect.
    """
    request.complement()
    if now is None:
        now = dt.datetime.now(dt.UTC)

    if request.is_signed() and not credentials.is_expired(now):
        return

    date = rfc1123(now)
    request.remove_header("Date")
    request.add_header("Date", date)

    request.remove_header(SECURITY_TOKEN_HEADER)
    if credentials.token:
        request.add_header(SECURITY_TOKEN_HEADER, credentials.token)

    to_sign = string_to_sign(
        method=request.method,
        content_md5=request.get_header("Content-MD5") or "",
        content_type=request.get_header("Content-Type") or "",
        date=date,
        canonical_headers=canonical_headers(request.headers),
        canonical_resource=canonical_resource(
            request.canonical_uri, request.canonical_query_string
        ),
    )
    logger.debug("String to sign: %r", to_sign)

    signature = sign_string(to_sign, credentials.secret_key)
    request.remove_header("Authorization")
    request.add_header(
        "Authorization", f"{AUTH_SCHEME} {credentials.access_key}:{signature}"
    )
