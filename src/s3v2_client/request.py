"""The mutable request record that flows through canonicalization and signing."""

import base64
import datetime as dt
import hashlib

from .auth import build_canonical_query_string, canonical_uri, sign_request
from .credentials import Credentials
from .regions import AnyRegion, CustomRegion, build_hostname, signing_region_for
from .stream import ByteStream

Payload = bytes | ByteStream


class SignedRequest:
    """Method, path, headers, params and payload of one HTTP request.

    Header names are stored lowercase; values of a repeated header are kept
    in insertion order. ``canonical_uri`` and ``canonical_query_string`` are
    derived by ``complement()``.
    """

    def __init__(self, method: str, service: str, region: AnyRegion, path: str):
        self.method = method
        self.service = service
        self.region = region
        self.path = path
        self.headers: dict[str, list[str]] = {}
        self.params: dict[str, str | None] = {}
        self.scheme_override: str | None = None
        self.hostname_override: str | None = None
        self.payload: Payload | None = None
        self.canonical_uri = ""
        self.canonical_query_string = ""

    def __repr__(self) -> str:
        return (
            f"<SignedRequest {self.method} {self.service} "
            f"{self.region} {self.path!r} payload={self.payload!r}>"
        )

    @property
    def scheme(self) -> str:
        if self.scheme_override is not None:
            return self.scheme_override
        if isinstance(self.region, CustomRegion) and self.region.endpoint.startswith(
            "http://"
        ):
            return "http"
        return "https"

    @property
    def hostname(self) -> str:
        # may already be set by an endpoint prefix
        if self.hostname_override is not None:
            return self.hostname_override
        return build_hostname(self.service, self.region)

    def region_for_service(self) -> str:
        return signing_region_for(self.service, self.region)

    def set_hostname(self, hostname: str | None) -> None:
        self.hostname_override = hostname

    def set_endpoint_prefix(self, endpoint_prefix: str) -> None:
        self.hostname_override = build_hostname(endpoint_prefix, self.region)

    def add_header(self, key: str, value: str) -> None:
        self.headers.setdefault(key.lower(), []).append(value)

    def add_optional_header(self, key: str, value: object | None) -> None:
        if value is None:
            return
        if isinstance(value, bool):
            value = str(value).lower()
        self.add_header(key, str(value))

    def remove_header(self, key: str) -> None:
        self.headers.pop(key.lower(), None)

    def get_header(self, key: str) -> str | None:
        values = self.headers.get(key.lower())
        return values[0] if values else None

    def set_content_type(self, content_type: str) -> None:
        self.add_header("Content-Type", content_type)

    def add_param(self, key: str, value: str | None) -> None:
        self.params[key] = value

    def set_params(self, params: dict[str, str | None]) -> None:
        self.params = dict(params)

    def set_payload(self, payload: bytes | None) -> None:
        self.payload = payload

    def set_payload_stream(self, stream: ByteStream) -> None:
        self.payload = stream

    def set_content_md5_header(self) -> None:
        """Sets Content-MD5 from a buffered payload, streams are left alone."""
        if isinstance(self.payload, bytes):
            digest = hashlib.md5(self.payload).digest()
            self.add_header("Content-MD5", base64.b64encode(digest).decode("ascii"))

    def content_length(self) -> int | None:
        match self.payload:
            case None:
                return 0
            case bytes() as data:
                return len(data)
            case ByteStream() as stream:
                return stream.size_hint
        raise TypeError(f"Unsupported payload type: {type(self.payload)}")

    def complement(self) -> None:
        """Derives the canonical URI and query and the Host / Content-Length headers.

        Headers are removed before being re-added, so following a redirect
        with the same request does not accumulate duplicate values.
        """
        self.canonical_uri = canonical_uri(self.path, self.region)
        self.canonical_query_string = build_canonical_query_string(self.params)

        self.remove_header("Host")
        self.add_header("Host", self.hostname)

        length = self.content_length()
        if length is not None:
            self.remove_header("Content-Length")
            self.add_header("Content-Length", str(length))

    def is_signed(self) -> bool:
        return "signature" in self.params or "authorization" in self.headers

    def sign(self, credentials: Credentials, now: dt.datetime | None = None) -> None:
        sign_request(self, credentials, now)

    def header_items(self) -> list[tuple[str, str]]:
        return [
            (key, value) for key in sorted(self.headers) for value in self.headers[key]
        ]
