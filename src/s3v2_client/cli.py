#!/usr/bin/env python3
"""S3 CLI interface using the s3v2-client library."""

import asyncio
import json
import logging
import sys

import click

from .client import S3Client
from .credentials import ChainProvider, EnvironmentProvider, ProfileProvider
from .exceptions import S3Error
from .regions import CustomRegion, resolve_default_region


def _make_client(profile, region, endpoint):
    profile_provider = ProfileProvider(profile)
    resolved = resolve_default_region(region, profile_reader=profile_provider.region)

    endpoint = endpoint or profile_provider.endpoint_url()
    if endpoint:
        resolved = CustomRegion(resolved.region_name, endpoint)

    return S3Client(
        resolved,
        credentials_provider=ChainProvider(EnvironmentProvider(), profile_provider),
    )


def _run(coro):
    try:
        return asyncio.run(coro)
    except S3Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--profile", envvar="AWS_PROFILE", help="AWS profile name")
@click.option("--region", help="AWS region, e.g. eu-west-1")
@click.option(
    "--endpoint",
    envvar="AWS_ENDPOINT_URL",
    help="Custom S3-compatible endpoint, e.g. http://localhost:9000",
)
@click.option("--debug", is_flag=True, help="Log requests and signatures")
@click.pass_context
def cli(ctx, profile, region, endpoint, debug):
    """s3v2 - S3 operations signed with AWS Signature Version 2."""
    ctx.ensure_object(dict)

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    try:
        ctx.obj["client"] = _make_client(profile, region, endpoint)
    except S3Error as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("bucket")
@click.option("--location", help="Location constraint of the new bucket")
@click.pass_context
def mb(ctx, bucket, location):
    """Create a new bucket."""

    async def _mb():
        client = ctx.obj["client"]

        async with client:
            return await client.create_bucket(
                bucket=bucket, location_constraint=location
            )

    result = _run(_mb())
    click.echo(f"Bucket created: {bucket}")
    if result.get("location"):
        click.echo(f"Location: {result['location']}")


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--content-type", help="Content type of the object")
@click.option("--metadata", help="JSON string of metadata key-value pairs")
@click.pass_context
def put(ctx, bucket, key, file_path, content_type, metadata):
    """Upload a file."""
    metadata_dict = None
    if metadata:
        try:
            metadata_dict = json.loads(metadata)
        except json.JSONDecodeError:
            click.echo("Error: Invalid JSON in metadata", err=True)
            sys.exit(1)

    with open(file_path, "rb") as f:
        data = f.read()

    async def _put():
        client = ctx.obj["client"]

        async with client:
            return await client.put_object(
                bucket=bucket,
                key=key,
                body=data,
                content_type=content_type,
                metadata=metadata_dict,
            )

    result = _run(_put())
    click.echo("Upload successful!")
    click.echo(f"ETag: {result['etag']}")
    if result.get("version_id"):
        click.echo(f"Version ID: {result['version_id']}")


@cli.command()
@click.argument("bucket")
@click.option("--prefix", help="Object key prefix filter")
@click.option("--max-keys", default=1000, help="Maximum number of objects to return")
@click.pass_context
def ls(ctx, bucket, prefix, max_keys):
    """List objects in a bucket."""

    async def _ls():
        client = ctx.obj["client"]

        async with client:
            return await client.list_objects(
                bucket=bucket, prefix=prefix, max_keys=max_keys
            )

    result = _run(_ls())

    for common_prefix in result["common_prefixes"]:
        click.echo(f"{'PRE':>30} {common_prefix}")
    for obj in result["objects"]:
        click.echo(f"{obj['last_modified'][:19]:<19} {obj['size']:>10} {obj['key']}")

    if not result["objects"] and not result["common_prefixes"]:
        click.echo("No objects found")
    if result["is_truncated"]:
        click.echo("... (truncated, use --max-keys to see more)")


if __name__ == "__main__":
    cli()
