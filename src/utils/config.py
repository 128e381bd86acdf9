"""Configuration loading and validation for beatfinder."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

from utils.logging import NOISY_LOGGERS

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_COBALT_INSTANCES = (
    "https://api.cobalt.tools,"
    "https://cobalt-api.kwiatekmiki.com,"
    "https://cobalt.api.timelessnesses.me"
)
DEFAULT_MANUAL_TOOL_URL = "https://yt-mp3s.me/button/mp3/{video_id}"


def _split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if path == ":memory:" or Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Search
        "youtube_api_key": os.getenv("YOUTUBE_API_KEY"),
        # Extraction backends, tier 1 (direct API calls)
        "cobalt_instances": _split_list(os.getenv("COBALT_INSTANCES", DEFAULT_COBALT_INSTANCES)),
        "piped_instances": _split_list(os.getenv("PIPED_INSTANCES")),
        "audio_bitrate": os.getenv("AUDIO_BITRATE", "320"),
        "direct_timeout_seconds": float(os.getenv("DIRECT_TIMEOUT_SECONDS", "8")),
        # Tier 2 (server-mediated)
        "proxy_url": os.getenv("DOWNLOAD_PROXY_URL"),
        "proxy_timeout_seconds": float(os.getenv("PROXY_TIMEOUT_SECONDS", "20")),
        "ytdlp_enabled": os.getenv("YTDLP_ENABLED", "true").lower() == "true",
        "ytdlp_timeout_seconds": float(os.getenv("YTDLP_TIMEOUT_SECONDS", "30")),
        "ytdlp_cookies_file": os.getenv("YTDLP_COOKIES_FILE"),  # Optional cookie file path
        # Tier 3 (human-operated tool); empty disables it
        "manual_tool_url": os.getenv("MANUAL_TOOL_URL", DEFAULT_MANUAL_TOOL_URL),
        # Storage
        "database_path": resolve_path(os.getenv("DATABASE_PATH"), ".beatfinder/beatfinder.db"),
        "vote_max_attempts": int(os.getenv("VOTE_MAX_ATTEMPTS", "5")),
        "downloads_dir": os.getenv("DOWNLOADS_DIR") or str(Path.home() / "Downloads" / "BeatFinderMP3"),
        # API server
        "cors_origins": _split_list(os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "json_logs": os.getenv("JSON_LOGS", "false").lower() == "true",
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if not config.get("youtube_api_key"):
        errors.append("YOUTUBE_API_KEY is required for beat search")

    has_network_backend = bool(
        config.get("cobalt_instances")
        or config.get("piped_instances")
        or config.get("proxy_url")
        or config.get("ytdlp_enabled")
    )
    if not has_network_backend and not config.get("manual_tool_url"):
        errors.append(
            "At least one extraction backend required: COBALT_INSTANCES, PIPED_INSTANCES, "
            "DOWNLOAD_PROXY_URL, YTDLP_ENABLED or MANUAL_TOOL_URL"
        )

    for key in ("direct_timeout_seconds", "proxy_timeout_seconds", "ytdlp_timeout_seconds"):
        if config.get(key, 1) <= 0:
            errors.append(f"{key.upper()} must be positive")

    if config.get("vote_max_attempts", 1) < 1:
        errors.append("VOTE_MAX_ATTEMPTS must be at least 1")

    manual_tool_url = config.get("manual_tool_url")
    if manual_tool_url and "{video_id}" not in manual_tool_url:
        errors.append("MANUAL_TOOL_URL must contain a {video_id} placeholder")

    if config.get("database_path") and config["database_path"] != ":memory:":
        db_dir = Path(config["database_path"]).parent
        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create database folder: {e}")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Rich terminal logging for the CLI (the API uses utils.logging instead)."""
    logging.root.handlers.clear()

    debug = log_level.upper() == "DEBUG"
    rich_handler = RichHandler(
        show_time=debug,
        show_level=True,
        show_path=debug,
        rich_tracebacks=True,
        markup=False,  # Disable markup to avoid conflicts
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[rich_handler],
        format="%(message)s",
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
