"""Turns non-success responses into exceptions.

Classification is best-effort: an error body that cannot be parsed or
carries an unknown code becomes ``S3UnknownError`` holding the raw response.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import (
    REQUEST_ID_HEADER,
    S3_REQUEST_ID_HEADER,
    S3ParseError,
    S3ServiceError,
    S3UnknownError,
)
from .transport import BufferedHttpResponse
from .xmlutil import (
    XmlCursor,
    XmlParseError,
    advance_to_next_start,
    deserialize_object,
    read_tagged_text,
    skip_subtree,
)

logger = logging.getLogger(__name__)

KnownErrors = Mapping[str, type[S3ServiceError]]


@dataclass
class XmlError:
    code: str = ""
    message: str = ""
    request_id: str | None = None
    resource: str | None = None
    host_id: str | None = None


_XML_ERROR_FIELDS = {
    "Code": "code",
    "Message": "message",
    "RequestId": "request_id",
    "Resource": "resource",
    "HostId": "host_id",
}


def _error_field(name: str, cursor: XmlCursor, error: XmlError) -> None:
    attr = _XML_ERROR_FIELDS.get(name)
    if attr is None:
        skip_subtree(cursor)
        return
    setattr(error, attr, read_tagged_text(cursor, name))


def parse_xml_error(cursor: XmlCursor, tag: str = "Error") -> XmlError:
    return deserialize_object(tag, cursor, XmlError(), _error_field)


def _request_id(response: BufferedHttpResponse) -> str | None:
    return response.headers.get(REQUEST_ID_HEADER) or response.headers.get(
        S3_REQUEST_ID_HEADER
    )


def classify_xml_error(
    response: BufferedHttpResponse, known_errors: KnownErrors
) -> Exception:
    cursor = XmlCursor.from_bytes(response.body)
    advance_to_next_start(cursor)
    try:
        error = parse_xml_error(cursor)
    except XmlParseError as e:
        logger.debug("Unparseable error body (HTTP %s): %s", response.status, e)
        return S3UnknownError(response)

    error_class = known_errors.get(error.code)
    if error_class is None:
        return S3UnknownError(response)
    return error_class(
        error.message,
        status_code=response.status,
        error_code=error.code,
        request_id=error.request_id or _request_id(response),
    )


@dataclass
class JsonError:
    type: str
    message: str

    @staticmethod
    def _load(response: BufferedHttpResponse) -> dict[str, Any] | None:
        try:
            data = json.loads(response.body)
        except (ValueError, UnicodeDecodeError):
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _text(data: dict[str, Any], *names: str) -> str | None:
        # first non-empty value; TypeError when a present field is not a string
        for name in names:
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise TypeError(f"{name} is {type(value).__name__}, not str")
            if value:
                return value
        return None

    @classmethod
    def parse(cls, response: BufferedHttpResponse) -> "JsonError | None":
        """Errors of JSON protocol services: {"__type": "ns#Code", "message": ...}."""
        data = cls._load(response)
        if data is None:
            return None

        try:
            raw_type = cls._text(data, "__type") or "Unknown"
            message = cls._text(data, "message", "Message") or ""
        except TypeError as e:
            logger.debug("Malformed JSON error body: %s", e)
            return None
        return cls(raw_type.split("#")[-1], message)

    @classmethod
    def parse_rest(cls, response: BufferedHttpResponse) -> "JsonError | None":
        """Errors of REST/JSON services, typed by the x-amzn-errortype header
        or the body's code field."""
        data = cls._load(response)
        if data is None:
            return None

        header_type = response.headers.get("x-amzn-errortype")
        try:
            if header_type is not None:
                error_type = header_type.split(":")[0]
            else:
                error_type = cls._text(data, "code", "Code") or "Unknown"
            message = cls._text(data, "message", "Message") or ""
        except TypeError as e:
            logger.debug("Malformed JSON error body: %s", e)
            return None
        return cls(error_type, message)


def classify_json_error(
    response: BufferedHttpResponse, known_errors: KnownErrors, rest: bool = False
) -> Exception:
    error = JsonError.parse_rest(response) if rest else JsonError.parse(response)
    if error is None:
        return S3UnknownError(response)

    error_class = known_errors.get(error.type)
    if error_class is None:
        return S3UnknownError(response)
    return error_class(
        error.message,
        status_code=response.status,
        error_code=error.type,
        request_id=_request_id(response),
    )


def parse_json_payload(response: BufferedHttpResponse) -> Any:
    # field-less responses come back empty or as "null"
    body = response.body
    if not body or body == b"null":
        body = b"{}"
    logger.debug("Response body: %r", body)
    try:
        return json.loads(body)
    except ValueError as e:
        raise S3ParseError(f"Invalid JSON response: {e}") from e
