"""Extraction backends package for multi-provider audio resolution."""

import logging
from typing import Optional

import httpx

from services.extraction_backends.base import (
    BackendError,
    ExtractionBackend,
    build_filename,
    sanitize_filename,
    select_best_rendition,
)
from services.extraction_backends.cobalt import CobaltBackend
from services.extraction_backends.manual import ManualFallbackBackend, HandoffCallback
from services.extraction_backends.piped import PipedBackend
from services.extraction_backends.proxy import ProxyBackend
from services.extraction_backends.ytdlp import YtDlpBackend

logger = logging.getLogger(__name__)


def build_default_backends(
    config: dict,
    client: Optional[httpx.AsyncClient] = None,
    handoff: Optional[HandoffCallback] = None,
) -> list[ExtractionBackend]:
    """Assemble the resolution chain from configuration.

    Priorities follow list order: Cobalt instances, then Piped instances in
    the direct tier; the relay, then yt-dlp in the proxy tier; the manual
    tool last.

    Args:
        config: Configuration dict from load_config()
        client: Shared HTTP client for the network backends
        handoff: Optional callback run by the manual tier

    Returns:
        List of configured backends (unsorted; the Resolver orders them)
    """
    client = client or httpx.AsyncClient(timeout=None)
    backends: list[ExtractionBackend] = []
    priority = 0

    for instance in config.get("cobalt_instances", []):
        backends.append(
            CobaltBackend(
                instance,
                priority=priority,
                timeout_seconds=config.get("direct_timeout_seconds"),
                audio_bitrate=config.get("audio_bitrate", "320"),
                client=client,
            )
        )
        priority += 1

    for instance in config.get("piped_instances", []):
        backends.append(
            PipedBackend(instance, priority=priority, timeout_seconds=config.get("direct_timeout_seconds"), client=client)
        )
        priority += 1

    if config.get("proxy_url"):
        backends.append(
            ProxyBackend(
                config["proxy_url"],
                priority=priority,
                timeout_seconds=config.get("proxy_timeout_seconds"),
                client=client,
            )
        )
        priority += 1

    if config.get("ytdlp_enabled", True):
        backends.append(
            YtDlpBackend(
                priority=priority,
                timeout_seconds=config.get("ytdlp_timeout_seconds"),
                cookies_file=config.get("ytdlp_cookies_file"),
            )
        )
        priority += 1

    if config.get("manual_tool_url"):
        backends.append(ManualFallbackBackend(priority=priority, tool_url=config["manual_tool_url"], handoff=handoff))

    logger.info(f"Configured {len(backends)} extraction backends: {', '.join(b.name for b in backends)}")
    return backends


__all__ = [
    "BackendError",
    "ExtractionBackend",
    "CobaltBackend",
    "PipedBackend",
    "ProxyBackend",
    "YtDlpBackend",
    "ManualFallbackBackend",
    "build_default_backends",
    "build_filename",
    "sanitize_filename",
    "select_best_rendition",
]
