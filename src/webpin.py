"""webpin - resolve web dependencies into pinned CDN URLs.

Commands:
    lock         Resolve ``webDependencies`` and write the lockfile.
    lookup       Look up one package import on the CDN.
    clear-cache  Wipe the persistent resource cache.

Returns:
    int: Exit code
"""
import asyncio
import json
import logging
import os
import sys
from typing import Optional, Tuple

from args import parse_args
from cdn.client import CDNClient
from cdn.memo import ResponseMemo
from common.errors import ConfigError, LockfileError, NetworkError, WebpinError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from config import WebpinConfig
from constants import Constants, ExitCodes
from lookup.service import LookupService
from resolver.import_map import ImportMap, load_lockfile, write_lockfile
from resolver.lockfile import LockfileGenerator
from resolver.specifier import parse_specifier
from resolver.specifier_resolver import SpecifierResolver
from resolver.url_resolver import UrlResolver
from storage.policies import PermanentCache
from storage.store import PersistentStore

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def build_resolver(config: WebpinConfig, store: PersistentStore) -> Tuple[CDNClient, SpecifierResolver]:
    """Wire the CDN client, permanent cache and resolvers for install-time use."""
    memo = ResponseMemo(
        max_entries=config.memo_max_entries,
        max_bytes=config.memo_max_bytes,
    )
    client = CDNClient(origin=config.origin, memo=memo, timeout=config.timeout)
    url_resolver = UrlResolver(client, PermanentCache(store))
    return client, SpecifierResolver(client, url_resolver)


async def run_lock(config: WebpinConfig, lockfile: Optional[ImportMap] = None) -> ImportMap:
    """Resolve every web dependency and return the new import map.

    Raises:
        ResolutionError: The first failure, once every dependency was tried.
    """
    store = PersistentStore(config.cache_dir)
    client, resolver = build_resolver(config, store)
    generator = LockfileGenerator(resolver, concurrency=config.concurrency)
    try:
        async with client:
            return await generator.generate(config.web_dependencies, lockfile)
    finally:
        store.close()


async def run_lookup(config: WebpinConfig, specifier: str, semver: Optional[str]) -> dict:
    """Look up one specifier through the freshness cache."""
    store = PersistentStore(config.cache_dir)
    client = CDNClient(origin=config.origin, timeout=config.timeout)
    service = LookupService(client, store)
    try:
        async with client:
            semver_map = {parse_specifier(specifier).package_name: semver} if semver else None
            result = await service.lookup_by_specifier(specifier, semver_map)
            await service.drain()
    finally:
        store.close()
    return {
        "specifier": specifier,
        "statusCode": result.status_code,
        "importStatus": result.import_status,
        "importUrl": result.import_url,
        "pinnedUrl": result.pinned_url,
        "typesUrl": result.types_url,
        "isCached": result.is_cached,
        "isStale": result.is_stale,
    }


async def run_clear_cache(config: WebpinConfig) -> int:
    """Remove every entry from the persistent cache."""
    store = PersistentStore(config.cache_dir)
    service = LookupService(CDNClient(origin=config.origin, timeout=config.timeout), store)
    try:
        return await service.clear_cache()
    finally:
        store.close()


def _exit_code_for(error: Exception) -> int:
    if isinstance(error, (ConfigError, LockfileError)):
        return ExitCodes.FILE_ERROR.value
    if isinstance(error, NetworkError):
        return ExitCodes.CONNECTION_ERROR.value
    return ExitCodes.RESOLUTION_ERROR.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    try:
        config = WebpinConfig.from_args(args)

        if args.COMMAND == "lock":
            lockfile = load_lockfile(config.lockfile)
            if not config.web_dependencies:
                logger.warning("No webDependencies configured; writing an empty lockfile.")
            import_map = asyncio.run(run_lock(config, lockfile))
            write_lockfile(config.lockfile, import_map)
            logger.info("Resolved %d dependencies.", len(import_map))
        elif args.COMMAND == "lookup":
            result = asyncio.run(run_lookup(config, args.SPECIFIER, args.SEMVER))
            sys.stdout.write(json.dumps(result, indent=2) + "\n")
        elif args.COMMAND == "clear-cache":
            removed = asyncio.run(run_clear_cache(config))
            sys.stdout.write(f"Removed {removed} cached resources.\n")
    except WebpinError as exc:
        logger.error("%s", exc)
        sys.exit(_exit_code_for(exc))

    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
