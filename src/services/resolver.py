"""Audio resolver - turns a video id into a downloadable audio URL.

Backends are tried one at a time in (tier, priority) order. The first
backend that returns a Resolved result ends the resolution; every failure
is recorded as an AttemptLog and the next backend is tried. No backend is
retried within a single resolve() call.
"""

import asyncio
import logging
import time
from typing import Iterable, Optional

import httpx

from models.beat import VideoRef
from models.resolution import (
    AttemptLog,
    AttemptOutcome,
    Exhausted,
    ManualHandoff,
    Resolved,
    ResolutionResult,
    TimedOut,
)
from services.extraction_backends.base import BackendError, ExtractionBackend

logger = logging.getLogger(__name__)


class Resolver:
    """Sequential multi-tier fallback over extraction backends."""

    def __init__(self, backends: Iterable[ExtractionBackend]):
        """Initialize resolver.

        Args:
            backends: Backends in any order; sorted by tier then priority
        """
        self.backends = sorted(backends, key=lambda b: (b.tier.rank, b.priority))

    async def resolve(self, video_id: str, title: Optional[str] = None) -> ResolutionResult:
        """Resolve a video to an audio URL.

        Args:
            video_id: Source video identifier
            title: Optional display title for the suggested filename

        Returns:
            Resolved, Exhausted or TimedOut. Backend failures never raise.
        """
        video = VideoRef(video_id)
        attempts: list[AttemptLog] = []
        hint: Optional[ManualHandoff] = None

        for backend in self.backends:
            if not backend.is_configured():
                logger.debug(f"Skipping unconfigured backend {backend.name}")
                continue

            start = time.monotonic()
            try:
                outcome = await asyncio.wait_for(backend.invoke(video, title), timeout=backend.timeout_seconds)
            except (asyncio.TimeoutError, httpx.TimeoutException):
                logger.warning(f"[{backend.name}] Timed out after {backend.timeout_seconds}s for {video_id}")
                attempts.append(
                    AttemptLog(backend.name, AttemptOutcome.TIMEOUT, f"no response within {backend.timeout_seconds}s")
                )
                continue
            except BackendError as e:
                logger.info(f"[{backend.name}] Reported failure for {video_id}: {e}")
                attempts.append(AttemptLog(backend.name, AttemptOutcome.ERROR, str(e)))
                continue
            except Exception as e:
                logger.warning(f"[{backend.name}] Failed for {video_id}: {type(e).__name__}: {e}")
                attempts.append(AttemptLog(backend.name, AttemptOutcome.ERROR, f"{type(e).__name__}: {e}"))
                continue

            elapsed = time.monotonic() - start

            if isinstance(outcome, Resolved):
                logger.info(f"Resolved {video_id} via {backend.name} in {elapsed:.1f}s after {len(attempts)} failed attempts")
                return outcome

            if isinstance(outcome, ManualHandoff):
                hint = outcome
                attempts.append(AttemptLog(backend.name, AttemptOutcome.NO_RESULT, f"manual handoff: {outcome.tool_url}"))
                continue

            attempts.append(AttemptLog(backend.name, AttemptOutcome.NO_RESULT))

        if any(a.outcome is AttemptOutcome.TIMEOUT for a in attempts):
            logger.warning(f"Resolution of {video_id} timed out ({len(attempts)} attempts)")
            return TimedOut(attempts=attempts, hint=hint)

        logger.warning(f"Resolution of {video_id} exhausted all {len(attempts)} backends")
        return Exhausted(attempts=attempts, hint=hint)
