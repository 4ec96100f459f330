import functools
import xml.etree.ElementTree as ET
from typing import Any

from .base import _S3ClientBase
from .error_parsing import classify_xml_error
from .exceptions import BucketAlreadyExistsError, BucketAlreadyOwnedByYouError
from .xmlutil import (
    XmlCursor,
    deserialize_object,
    parse_bool,
    parse_top_level,
    read_tagged_text,
    read_tagged_value,
    skip_subtree,
    write_text_element,
)

S3_XMLNS = "http://s3.amazonaws.com/doc/2006-03-01/"

CREATE_BUCKET_ERRORS = {
    "BucketAlreadyExists": BucketAlreadyExistsError,
    "BucketAlreadyOwnedByYou": BucketAlreadyOwnedByYouError,
}
LIST_OBJECTS_ERRORS = {}


def _build_create_bucket_xml(location_constraint: str | None = None) -> bytes | None:
    # us-east-1 is the default location and must not be sent explicitly
    if not location_constraint or location_constraint == "us-east-1":
        return None

    root = ET.Element("CreateBucketConfiguration")
    root.set("xmlns", S3_XMLNS)
    write_text_element(root, "LocationConstraint", location_constraint)

    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _object_field(name: str, cursor: XmlCursor, obj: dict[str, Any]) -> None:
    match name:
        case "Key":
            obj["key"] = read_tagged_text(cursor, name)
        case "LastModified":
            obj["last_modified"] = read_tagged_text(cursor, name)
        case "ETag":
            obj["etag"] = read_tagged_text(cursor, name).strip('"')
        case "Size":
            obj["size"] = read_tagged_value(cursor, name, int)
        case "StorageClass":
            obj["storage_class"] = read_tagged_text(cursor, name)
        case _:
            skip_subtree(cursor)


def _common_prefix_field(name: str, cursor: XmlCursor, obj: dict[str, Any]) -> None:
    if name == "Prefix":
        obj["prefix"] = read_tagged_text(cursor, name)
    else:
        skip_subtree(cursor)


def _list_bucket_field(name: str, cursor: XmlCursor, result: dict[str, Any]) -> None:
    match name:
        case "Contents":
            obj = deserialize_object(
                name,
                cursor,
                {
                    "key": "",
                    "last_modified": "",
                    "etag": "",
                    "size": 0,
                    "storage_class": "STANDARD",
                },
                _object_field,
            )
            result["objects"].append(obj)
        case "CommonPrefixes":
            common = deserialize_object(name, cursor, {}, _common_prefix_field)
            if "prefix" in common:
                result["common_prefixes"].append(common["prefix"])
        case "Name":
            result["name"] = read_tagged_text(cursor, name)
        case "KeyCount":
            result["key_count"] = read_tagged_value(cursor, name, int)
        case "IsTruncated":
            result["is_truncated"] = read_tagged_value(cursor, name, parse_bool)
        case "NextContinuationToken":
            result["next_continuation_token"] = read_tagged_text(cursor, name)
        case _:
            skip_subtree(cursor)


class _BucketOperations(_S3ClientBase):
    # https://docs.aws.amazon.com/AmazonS3/latest/API/API_CreateBucket.html
    async def create_bucket(
        self,
        bucket: str,
        location_constraint: str | None = None,
        acl: str | None = None,
        grant_full_control: str | None = None,
        grant_read: str | None = None,
        grant_read_acp: str | None = None,
        grant_write: str | None = None,
        grant_write_acp: str | None = None,
        object_lock_enabled: bool | None = None,
    ) -> dict[str, Any]:
        self._validate_bucket(bucket)
        request = self._new_request("PUT", f"/{bucket}")

        request.add_optional_header("x-amz-acl", acl)
        request.add_optional_header("x-amz-grant-full-control", grant_full_control)
        request.add_optional_header("x-amz-grant-read", grant_read)
        request.add_optional_header("x-amz-grant-read-acp", grant_read_acp)
        request.add_optional_header("x-amz-grant-write", grant_write)
        request.add_optional_header("x-amz-grant-write-acp", grant_write_acp)
        request.add_optional_header(
            "x-amz-bucket-object-lock-enabled", object_lock_enabled
        )

        data = _build_create_bucket_xml(location_constraint)
        if data:
            request.set_content_type("application/xml")
        request.set_payload(data)

        response = await self._sign_and_dispatch(
            request,
            functools.partial(classify_xml_error, known_errors=CREATE_BUCKET_ERRORS),
        )

        result = {
            "location": response.headers.get("Location"),
        }

        response.close()
        return result

    # https://docs.aws.amazon.com/AmazonS3/latest/API/API_ListObjectsV2.html
    async def list_objects(
        self,
        bucket: str,
        prefix: str | None = None,
        max_keys: int = 1000,
        continuation_token: str | None = None,
    ) -> dict[str, Any]:
        self._validate_bucket(bucket)
        request = self._new_request("GET", f"/{bucket}")
        request.add_param("list-type", "2")
        request.add_param("max-keys", str(max_keys))
        if prefix:
            request.add_param("prefix", prefix)
        if continuation_token:
            request.add_param("continuation-token", continuation_token)

        response = await self._sign_and_dispatch(
            request,
            functools.partial(classify_xml_error, known_errors=LIST_OBJECTS_ERRORS),
        )
        buffered = await response.buffer()

        result = {
            "name": bucket,
            "objects": [],
            "common_prefixes": [],
            "key_count": 0,
            "is_truncated": False,
            "next_continuation_token": None,
        }
        # some S3 services return an empty body for empty buckets
        result = parse_top_level(
            buffered,
            lambda tag, cursor: deserialize_object(
                tag, cursor, result, _list_bucket_field
            ),
            result,
        )
        result["prefix"] = prefix
        result["max_keys"] = max_keys
        return result
