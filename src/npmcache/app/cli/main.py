"""CLI main entry point."""

import json
import sys
from pathlib import Path
from typing import Any

import click

from ...adapters import (
    LocalCacheAdapter,
    LoggingMetricsAdapter,
    NodeToolchain,
    NoopMetricsAdapter,
    NpmInstaller,
    S3CacheAdapter,
    StdLoggerAdapter,
    SubprocessRunner,
    UtcClockAdapter,
)
from ...core import CacheService, NpmCacheConfig, pack, reconcile, unpack
from ...ports import CachePort, MetricsPort


def create_logger(config: NpmCacheConfig) -> StdLoggerAdapter:
    return StdLoggerAdapter(level=config.log_level, json_format=config.log_json)


def create_caches(config: NpmCacheConfig) -> list[CachePort]:
    """Build the configured cache backends, local first."""
    caches: list[CachePort] = []
    if config.use_local_cache:
        caches.append(LocalCacheAdapter(config.local_cache_dir))
    if config.use_s3_cache:
        caches.append(
            S3CacheAdapter(
                bucket=config.s3_bucket or "",
                endpoint=config.s3_endpoint,
                access_key_id=config.s3_access_key_id,
                secret_access_key=config.s3_secret_access_key,
                region=config.s3_region,
                use_tls=config.s3_tls,
                insecure_tls=config.s3_tls_insecure,
            )
        )
    return caches


def create_service(config: NpmCacheConfig) -> CacheService:
    """Create service with wired adapters."""
    config.validate()

    logger = create_logger(config)
    metrics: MetricsPort = (
        LoggingMetricsAdapter() if config.metrics_type == "logging" else NoopMetricsAdapter()
    )
    caches = create_caches(config)

    runner = SubprocessRunner()
    toolchain = NodeToolchain.discover(
        runner,
        production_mode=config.production_mode,
        node_binary=config.node_binary,
        npm_binary=config.npm_binary,
    )
    logger.debug("Node toolchain discovered", platform=toolchain.platform)

    return CacheService(
        caches=caches,
        installer=NpmInstaller(toolchain, runner),
        clock=UtcClockAdapter(),
        logger=logger,
        metrics=metrics,
        platform=toolchain.platform,
        modules_dir=config.modules_dir,
        lockfile=config.lockfile,
        precache_command=config.precache_command,
        force=config.force,
        temp_dir=config.temp_dir,
        pack_policy=config.pack_policy,
        unpack_policy=config.unpack_policy,
    )


def load_config(ctx: click.Context, **overrides: Any) -> NpmCacheConfig:
    """Merge group options, command options and the environment."""
    config = NpmCacheConfig.from_env(**ctx.obj, **overrides)
    config.validate()
    return config


def fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.option(
    "--loglevel",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: INFO)",
)
@click.option("--json", "log_json", is_flag=True, help="Write logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, loglevel: str | None, log_json: bool) -> None:
    """npmcache - cache installed node_modules trees locally and in S3."""
    ctx.obj = {"log_level": loglevel, "log_json": log_json or None}


@cli.command()
@click.option("--force", is_flag=True, help="Reinstall even when the key is cached")
@click.option("--local/--no-local", "use_local_cache", default=None, help="Use the local cache")
@click.option("--local-dir", "local_cache_dir", help="Local cache directory")
@click.option("--s3/--no-s3", "use_s3_cache", default=None, help="Use the S3 cache")
@click.option("--s3-endpoint", help="S3 endpoint as host:port or URL")
@click.option("--s3-access-key-id", help="S3 access key ID")
@click.option("--s3-secret-access-key", help="S3 secret access key")
@click.option("--s3-bucket", help="S3 bucket name")
@click.option("--s3-region", help="S3 region")
@click.option("--s3-tls/--no-s3-tls", default=None, help="Connect to S3 over HTTPS")
@click.option("--s3-tls-insecure", is_flag=True, help="Skip S3 certificate verification")
@click.option("--precache", "precache_command", help="Shell command to run before caching")
@click.option("--temp-dir", help="Directory for the temporary archive")
@click.option("--modules-dir", help="Installed modules directory (default: node_modules)")
@click.option("--lockfile", help="Lockfile to hash (default: package-lock.json)")
@click.pass_context
def install(
    ctx: click.Context,
    force: bool,
    s3_tls_insecure: bool,
    **options: Any,
) -> None:
    """Install node modules from cache, or with npm and populate the cache."""
    try:
        config = load_config(
            ctx, force=force or None, s3_tls_insecure=s3_tls_insecure or None, **options
        )
        service = create_service(config)
        summary = service.run()
        click.echo(json.dumps(summary.to_dict(), indent=2))

    except Exception as e:
        fail(e)


@cli.command()
@click.option("--modules-dir", help="Installed modules directory (default: node_modules)")
@click.option("--lockfile", help="Lockfile to hash (default: package-lock.json)")
@click.option("--precache", "precache_command", help="Pre-cache command included in the key")
@click.pass_context
def key(ctx: click.Context, **options: Any) -> None:
    """Print the cache key for the current directory."""
    try:
        config = load_config(ctx, **options)
        service = create_service(config)
        click.echo(service.create_cache_key())

    except Exception as e:
        fail(e)


@cli.command(name="pack")
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("source", type=click.Path(path_type=Path))
@click.pass_context
def pack_command(ctx: click.Context, destination: Path, source: Path) -> None:
    """Archive SOURCE into the gzip-compressed tar file DESTINATION."""
    try:
        config = load_config(ctx)
        logger = create_logger(config)
        warnings = pack(destination, source, config.pack_policy)
        for warning in warnings:
            logger.warning(warning)

        output = {"archive": str(destination), "warnings": warnings}
        click.echo(json.dumps(output, indent=2))

    except Exception as e:
        fail(e)


@cli.command(name="unpack")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--reconcile",
    "reconcile_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Remove files under this directory that are not in the archive",
)
@click.pass_context
def unpack_command(ctx: click.Context, archive: Path, reconcile_dir: Path | None) -> None:
    """Extract ARCHIVE into the current directory."""
    try:
        config = load_config(ctx)
        logger = create_logger(config)
        with open(archive, "rb") as f:
            result = unpack(f, config.unpack_policy)
        for warning in result.warnings:
            logger.warning(warning)

        removed = reconcile(reconcile_dir, result.manifest) if reconcile_dir else []

        output = {
            "files": len(result.manifest),
            "unchanged": len(result.skipped),
            "written": len(result.written),
            "removed": removed,
            "warnings": result.warnings,
        }
        click.echo(json.dumps(output, indent=2))

    except Exception as e:
        fail(e)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
