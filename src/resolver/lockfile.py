"""Batch resolution of web dependencies into a new lockfile."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Mapping, Optional

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

from .import_map import ImportMap
from .specifier_resolver import SpecifierResolver

logger = logging.getLogger(__name__)


class FirstError:
    """Holds the first error recorded across a batch; later errors are ignored."""

    def __init__(self) -> None:
        self._error: Optional[BaseException] = None

    def record(self, error: BaseException) -> bool:
        """Record ``error`` unless one is already held. Returns True if recorded."""
        if self._error is not None:
            return False
        self._error = error
        return True

    @property
    def error(self) -> Optional[BaseException]:
        return self._error


class LockfileGenerator:
    """Resolves every dependency under a concurrency ceiling.

    A failing dependency never cancels the others: every specifier is
    attempted, and only after the whole batch has finished is the first
    recorded error raised.
    """

    def __init__(
        self,
        resolver: SpecifierResolver,
        concurrency: int = Constants.RESOLVE_CONCURRENCY,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._resolver = resolver
        self._concurrency = concurrency
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneous resolutions seen so far."""
        return self._peak_in_flight

    async def generate(
        self,
        dependencies: Mapping[str, str],
        lockfile: Optional[ImportMap] = None,
    ) -> ImportMap:
        """Resolve ``dependencies`` (specifier -> semver) into an import map.

        Args:
            dependencies: Specifiers and their semver ranges.
            lockfile: Previous import map; its pins are reused.

        Returns:
            The new import map, keys sorted.

        Raises:
            ResolutionError: The first error hit by any dependency, raised
                only once every dependency has been attempted.
        """
        semaphore = asyncio.Semaphore(self._concurrency)
        imports: Dict[str, str] = {}
        first_error = FirstError()

        async def _resolve_one(specifier: str, semver: str) -> None:
            async with semaphore:
                self._in_flight += 1
                self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
                try:
                    result = await self._resolver.resolve(specifier, semver, lockfile)
                    imports[specifier] = result.pinned_url
                except Exception as exc:  # recorded here, re-raised after the batch
                    if first_error.record(exc):
                        logger.debug("First resolution error recorded for %s: %s", specifier, exc)
                    else:
                        logger.debug("Additional resolution error for %s: %s", specifier, exc)
                finally:
                    self._in_flight -= 1

        with Timer() as t:
            await asyncio.gather(
                *(_resolve_one(specifier, semver) for specifier, semver in dependencies.items())
            )

        if is_debug_enabled(logger):
            logger.debug(
                "Lockfile generation finished",
                extra=extra_context(
                    event="function_exit",
                    component="lockfile_generator",
                    action="generate",
                    outcome="failure" if first_error.error else "success",
                    count=len(dependencies),
                    resolved=len(imports),
                    peak_in_flight=self._peak_in_flight,
                    duration_ms=t.duration_ms(),
                ),
            )

        if first_error.error is not None:
            raise first_error.error
        return ImportMap(imports={key: imports[key] for key in sorted(imports)})
