"""Storage management commands for the S3-compatible object store.

- Configuration and connectivity information
- Bucket and key listings
- Presigned download URLs
- Batched bucket teardown
"""

import sys
from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager

import click

from storage_gateway.cli.utils import coro, error, format_bytes, info, section, success, warning
from storage_gateway.core.settings import get_storage_settings
from storage_gateway.infra.storage import GatewayService, StorageError, get_gateway_service


@asynccontextmanager
async def _open_gateway() -> AsyncIterator[GatewayService]:
    """Start the gateway for one command and stop it afterwards.

    Exits with status 1 when storage is disabled or unreachable.
    """
    settings = get_storage_settings()
    if not settings.is_configured:
        error("Storage is disabled. Set STORAGE_ENABLED=true.")
        sys.exit(1)

    gateway = get_gateway_service()
    try:
        await gateway.startup()
    except StorageError as e:
        error(f"Cannot connect to storage at {settings.endpoint}: {e.message}")
        sys.exit(1)

    try:
        yield gateway
    finally:
        await gateway.shutdown()


@click.group(name="storage")
def storage() -> None:
    """Storage management commands.

    Inspect buckets and objects, issue presigned URLs and tear down buckets.
    """


@storage.command(name="info")
def info_cmd() -> None:
    """Show the effective storage configuration (credentials are not printed)."""
    settings = get_storage_settings()

    section("Storage Configuration")
    click.echo(f"Enabled: {settings.enabled}")
    click.echo(f"Backend: {settings.backend.value}")
    click.echo(f"Endpoint: {settings.endpoint}")
    click.echo(f"Region: {settings.region}")
    click.echo(f"Use SSL: {settings.use_ssl} (verify: {settings.verify_ssl})")
    click.echo(f"Retries: {settings.max_retries} ({settings.retry_mode})")
    click.echo(f"Timeout: {settings.timeout}s")
    click.echo(f"Default Bucket: {settings.default_bucket}")
    click.echo(f"Teardown Pack Size: {settings.teardown_pack_size}")
    click.echo(f"Streaming Chunk Size: {format_bytes(settings.streaming_chunk_size)}")

    if settings.access_key and settings.secret_key:
        success("Credentials: Configured")
    else:
        warning("Credentials: Not configured (using the default AWS credential chain)")


@storage.command(name="buckets")
@coro
async def buckets_cmd() -> None:
    """List every bucket visible to the configured credentials."""
    async with _open_gateway() as gateway:
        try:
            buckets = [bucket async for bucket in gateway.list_buckets()]
        except StorageError as e:
            error(f"Failed to list buckets: {e.message}")
            sys.exit(1)

    if not buckets:
        warning("No buckets found")
        return

    click.echo(f"\n{'Bucket':<64} {'Created':<25}")
    click.echo("-" * 90)
    for bucket in buckets:
        created = (
            bucket.creation_date.strftime("%Y-%m-%d %H:%M:%S %Z") if bucket.creation_date else "-"
        )
        click.echo(f"{bucket.name:<64} {created:<25}")
    click.echo("-" * 90)
    success(f"{len(buckets)} bucket(s)")


@storage.command(name="list")
@click.argument("bucket")
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=100,
    show_default=True,
    help="Maximum number of keys to list",
)
@coro
async def list_cmd(bucket: str, limit: int) -> None:
    """List object keys in BUCKET, in store listing order.

    Examples:
        storage-gateway storage list academy-bucket
        storage-gateway storage list academy-bucket --limit 10
    """
    keys: list[str] = []
    async with _open_gateway() as gateway:
        try:
            async with aclosing(gateway.list_objects(bucket)) as listing:
                async for key in listing:
                    keys.append(key)
                    if len(keys) >= limit:
                        break
        except StorageError as e:
            error(f"Failed to list '{bucket}': {e.message}")
            sys.exit(1)

    if not keys:
        warning(f"No objects in '{bucket}'")
        return

    for key in keys:
        click.echo(key)
    info(f"Listed {len(keys)} key(s) (limit: {limit})")


@storage.command(name="presign")
@click.argument("bucket")
@click.argument("key")
@coro
async def presign_cmd(bucket: str, key: str) -> None:
    """Print a 24-hour download URL for BUCKET/KEY."""
    async with _open_gateway() as gateway:
        try:
            grant = await gateway.presign_download(bucket, key)
        except StorageError as e:
            error(f"Failed to presign '{bucket}/{key}': {e.message}")
            sys.exit(1)

    click.echo(grant.url)
    info(f"Expires at {grant.expires_at.isoformat()}")


@storage.command(name="teardown")
@click.argument("bucket")
@click.option(
    "--pack-size",
    type=click.IntRange(min=0),
    default=None,
    help="Flush threshold; a batch holds pack-size + 1 keys (default: STORAGE_TEARDOWN_PACK_SIZE)",
)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@coro
async def teardown_cmd(bucket: str, pack_size: int | None, yes: bool) -> None:
    """Delete every object in BUCKET in batches, then BUCKET itself.

    Failed batches are reported but do not stop the teardown.
    """
    if not yes:
        click.confirm(f"Delete bucket '{bucket}' and all of its objects?", abort=True)

    async with _open_gateway() as gateway:
        try:
            report = await gateway.teardown_bucket(bucket, pack_size=pack_size)
        except StorageError as e:
            error(f"Teardown of '{bucket}' failed: {e.message}")
            sys.exit(1)

    section(f"Teardown: {bucket}")
    click.echo(f"Pack size: {report.pack_size}")
    click.echo(f"Keys listed: {report.keys_listed}")
    click.echo(f"Batches: {len(report.batches)}")
    click.echo(f"Duration: {report.duration_seconds:.2f}s")

    for batch in report.failed_batches:
        warning(f"Batch {batch.index} failed: {batch.error}")
        for key in batch.failed_keys:
            click.echo(f"  {key}")

    if report.is_complete:
        success(f"Bucket '{bucket}' removed")
    else:
        warning(
            f"Bucket '{bucket}' removed with {len(report.failed_batches)} failed batch(es); "
            f"{len(report.failed_keys)} key(s) may remain"
        )
