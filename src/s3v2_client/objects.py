import datetime as dt
import email.utils
import functools
from typing import Any

from .base import _S3ClientBase
from .error_parsing import classify_xml_error
from .exceptions import S3ValidationError
from .stream import ByteStream

# PutObject has no modeled service errors, everything is S3UnknownError
PUT_OBJECT_ERRORS = {}


def _http_date(value: dt.datetime | str | None) -> str | None:
    if isinstance(value, dt.datetime):
        return email.utils.format_datetime(value.astimezone(dt.UTC), usegmt=True)
    return value


def _iso8601(value: dt.datetime | str | None) -> str | None:
    if isinstance(value, dt.datetime):
        return value.astimezone(dt.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return value


class _ObjectOperations(_S3ClientBase):
    # https://docs.aws.amazon.com/AmazonS3/latest/API/API_PutObject.html
    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | ByteStream | None = None,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
        acl: str | None = None,
        cache_control: str | None = None,
        content_disposition: str | None = None,
        content_encoding: str | None = None,
        content_language: str | None = None,
        content_length: int | None = None,
        content_md5: str | None = None,
        expires: dt.datetime | str | None = None,
        grant_full_control: str | None = None,
        grant_read: str | None = None,
        grant_read_acp: str | None = None,
        grant_write_acp: str | None = None,
        object_lock_mode: str | None = None,
        object_lock_retain_until_date: dt.datetime | str | None = None,
        object_lock_legal_hold_status: str | None = None,
        request_payer: str | None = None,
        storage_class: str | None = None,
        server_side_encryption: str | None = None,
        sse_customer_algorithm: str | None = None,
        sse_customer_key: str | None = None,
        sse_customer_key_md5: str | None = None,
        ssekms_key_id: str | None = None,
        tagging: str | None = None,
        website_redirect_location: str | None = None,
        compute_md5: bool = False,
    ) -> dict[str, Any]:
        """Uploads ``body`` as ``key``.

        ``content_length`` is only needed for streams without a size hint,
        otherwise the length is derived from the payload when signing.
        """
        self._validate_bucket(bucket)
        if not key:
            raise S3ValidationError("Object key must not be empty")

        request = self._new_request("PUT", f"/{bucket}/{key}")

        request.add_optional_header("x-amz-acl", acl)
        request.add_optional_header("Cache-Control", cache_control)
        request.add_optional_header("Content-Disposition", content_disposition)
        request.add_optional_header("Content-Encoding", content_encoding)
        request.add_optional_header("Content-Language", content_language)
        request.add_optional_header("Content-Length", content_length)
        request.add_optional_header("Content-MD5", content_md5)
        request.add_optional_header("Content-Type", content_type)
        request.add_optional_header("Expires", _http_date(expires))
        request.add_optional_header("x-amz-grant-full-control", grant_full_control)
        request.add_optional_header("x-amz-grant-read", grant_read)
        request.add_optional_header("x-amz-grant-read-acp", grant_read_acp)
        request.add_optional_header("x-amz-grant-write-acp", grant_write_acp)
        request.add_optional_header("x-amz-object-lock-mode", object_lock_mode)
        request.add_optional_header(
            "x-amz-object-lock-retain-until-date",
            _iso8601(object_lock_retain_until_date),
        )
        request.add_optional_header(
            "x-amz-object-lock-legal-hold", object_lock_legal_hold_status
        )
        request.add_optional_header("x-amz-request-payer", request_payer)
        request.add_optional_header("x-amz-storage-class", storage_class)
        request.add_optional_header(
            "x-amz-server-side-encryption", server_side_encryption
        )
        request.add_optional_header(
            "x-amz-server-side-encryption-customer-algorithm", sse_customer_algorithm
        )
        request.add_optional_header(
            "x-amz-server-side-encryption-customer-key", sse_customer_key
        )
        request.add_optional_header(
            "x-amz-server-side-encryption-customer-key-MD5", sse_customer_key_md5
        )
        request.add_optional_header(
            "x-amz-server-side-encryption-aws-kms-key-id", ssekms_key_id
        )
        request.add_optional_header("x-amz-tagging", tagging)
        request.add_optional_header(
            "x-amz-website-redirect-location", website_redirect_location
        )

        if metadata:
            for key_name, value in metadata.items():
                request.add_header(f"x-amz-meta-{key_name}", value)

        if isinstance(body, ByteStream):
            request.set_payload_stream(body)
        else:
            request.set_payload(body)
            if compute_md5 and content_md5 is None:
                request.set_content_md5_header()

        response = await self._sign_and_dispatch(
            request,
            functools.partial(classify_xml_error, known_errors=PUT_OBJECT_ERRORS),
        )

        result = {
            "etag": response.headers.get("ETag", "").strip('"'),
            "version_id": response.headers.get("x-amz-version-id"),
            "server_side_encryption": response.headers.get(
                "x-amz-server-side-encryption"
            ),
            "expiration": response.headers.get("x-amz-expiration"),
        }

        response.close()
        return result
