"""Regions and the per-service hostname table.

A region is either a member of the closed ``Region`` enum or a
``CustomRegion`` pointing at an S3-compatible endpoint such as MinIO or Ceph.
"""

import enum
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import ParseRegionError, S3Error
from .urlparsing import extract_hostname

logger = logging.getLogger(__name__)

DEFAULT_REGION_ENV_VARS = ("AWS_DEFAULT_REGION", "AWS_REGION")


class Region(enum.Enum):
    AP_EAST_1 = "ap-east-1"
    AP_NORTHEAST_1 = "ap-northeast-1"
    AP_NORTHEAST_2 = "ap-northeast-2"
    AP_NORTHEAST_3 = "ap-northeast-3"
    AP_SOUTH_1 = "ap-south-1"
    AP_SOUTHEAST_1 = "ap-southeast-1"
    AP_SOUTHEAST_2 = "ap-southeast-2"
    CA_CENTRAL_1 = "ca-central-1"
    EU_CENTRAL_1 = "eu-central-1"
    EU_WEST_1 = "eu-west-1"
    EU_WEST_2 = "eu-west-2"
    EU_WEST_3 = "eu-west-3"
    EU_NORTH_1 = "eu-north-1"
    EU_SOUTH_1 = "eu-south-1"
    ME_SOUTH_1 = "me-south-1"
    SA_EAST_1 = "sa-east-1"
    US_EAST_1 = "us-east-1"
    US_EAST_2 = "us-east-2"
    US_WEST_1 = "us-west-1"
    US_WEST_2 = "us-west-2"
    US_GOV_EAST_1 = "us-gov-east-1"
    US_GOV_WEST_1 = "us-gov-west-1"
    CN_NORTH_1 = "cn-north-1"
    CN_NORTHWEST_1 = "cn-northwest-1"
    AF_SOUTH_1 = "af-south-1"

    @property
    def region_name(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "Region":
        """Parses "eu-west-1" (or the compact "euwest1") case-insensitively."""
        lowered = text.lower()
        for region in cls:
            if lowered in (region.value, region.value.replace("-", "")):
                return region
        raise ParseRegionError(lowered)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CustomRegion:
    name: str
    endpoint: str

    @property
    def region_name(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.name


AnyRegion = Region | CustomRegion

CHINA_REGIONS = (Region.CN_NORTH_1, Region.CN_NORTHWEST_1)
GOV_REGIONS = (Region.US_GOV_EAST_1, Region.US_GOV_WEST_1)


def build_hostname(service: str, region: AnyRegion) -> str:
    """Builds the DNS name for a service in a region.

    >>> build_hostname("s3", Region.CN_NORTH_1)
    's3.cn-north-1.amazonaws.com.cn'
    """
    if isinstance(region, CustomRegion):
        return extract_hostname(region.endpoint)

    name = region.region_name
    match service:
        case "organizations":
            if region in CHINA_REGIONS:
                return "organizations.cn-northwest-1.amazonaws.com.cn"
            if region in GOV_REGIONS:
                return "organizations.us-gov-west-1.amazonaws.com"
            return "organizations.us-east-1.amazonaws.com"
        case "iam":
            if region in CHINA_REGIONS:
                return f"iam.{name}.amazonaws.com.cn"
            return "iam.amazonaws.com"
        case "chime":
            return "service.chime.aws.amazon.com"
        case "cloudfront" | "importexport" | "route53":
            return f"{service}.amazonaws.com"
        case "sdb" if region is Region.US_EAST_1:
            return "sdb.amazonaws.com"

    if region in CHINA_REGIONS:
        return f"{service}.{name}.amazonaws.com.cn"
    return f"{service}.{name}.amazonaws.com"


def signing_region_for(service: str, region: AnyRegion) -> str:
    """Region name to sign for; only differs from the caller's for organizations."""
    if service != "organizations":
        return region.region_name

    if region in CHINA_REGIONS:
        return Region.CN_NORTHWEST_1.region_name
    if region in GOV_REGIONS:
        return Region.US_GOV_WEST_1.region_name
    return Region.US_EAST_1.region_name


def resolve_endpoint(service: str, region: AnyRegion) -> tuple[str, str]:
    return build_hostname(service, region), signing_region_for(service, region)


def resolve_default_region(
    explicit: AnyRegion | str | None = None,
    env_reader: Callable[[str], str | None] = os.environ.get,
    profile_reader: Callable[[], str | None] | None = None,
) -> AnyRegion:
    """Picks the region from, in order: the explicit value, the
    AWS_DEFAULT_REGION / AWS_REGION environment variables, the profile and
    finally us-east-1.

    Malformed environment or profile values, or unreadable profile files,
    fall back to us-east-1. An explicit string has to be valid.
    """
    if isinstance(explicit, Region | CustomRegion):
        return explicit
    if explicit:
        return Region.parse(explicit)

    for var_name in DEFAULT_REGION_ENV_VARS:
        value = env_reader(var_name)
        if value:
            return _parse_or_default(value, var_name)

    if profile_reader is not None:
        try:
            value = profile_reader()
        except S3Error as e:
            logger.warning("Cannot read region from profile: %s", e)
            value = None
        if value:
            return _parse_or_default(value, "profile")

    return Region.US_EAST_1


def _parse_or_default(value: str, source: str) -> Region:
    try:
        return Region.parse(value)
    except ParseRegionError:
        logger.warning("Ignoring invalid region %r from %s", value, source)
        return Region.US_EAST_1


def region_to_tuple(region: AnyRegion) -> tuple[str, str | None]:
    if isinstance(region, CustomRegion):
        return region.name, region.endpoint
    return region.region_name, None


def region_from_tuple(value: tuple[str, str | None]) -> AnyRegion:
    name, endpoint = value
    if endpoint is not None:
        return CustomRegion(name, endpoint)
    return Region.parse(name)
