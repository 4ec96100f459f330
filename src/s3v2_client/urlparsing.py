import re

from yarl import URL


def extract_endpoint_components(endpoint: str) -> tuple[str, str | None]:
    """Splits a custom endpoint into its host and optional path.

    The scheme is optional and dropped: "http://localhost:9000/prefix" gives
    ("localhost:9000", "/prefix"), "s3.example.net" gives ("s3.example.net", None).
    """
    _, sep, rest = endpoint.partition("://")
    unschemed = rest if sep else endpoint

    host, slash, path = unschemed.partition("/")
    if not slash:
        return unschemed, None
    return host, "/" + path


def extract_hostname(endpoint: str) -> str:
    return extract_endpoint_components(endpoint)[0]


def extract_endpoint_path(endpoint: str) -> str | None:
    return extract_endpoint_components(endpoint)[1]


def build_url(scheme: str, hostname: str, path: str, query_string: str = "") -> URL:
    # path and query are already percent-encoded by the canonicalizer
    return URL.build(
        scheme=scheme,
        authority=hostname,
        path=path,
        query_string=query_string,
        encoded=True,
    )


def is_valid_s3_bucket_name(bucket: str) -> bool:
    """S3-specific bucket name validation (stricter than general DNS)."""
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9.-]+$", bucket):
        return False

    if bucket[0] in "-." or bucket[-1] in "-.":
        return False

    if ".." in bucket or ".-" in bucket or "-." in bucket:
        return False

    # Cannot look like IP address
    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True
