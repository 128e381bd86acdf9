"""Save resolved audio to the local downloads folder."""

import logging
from pathlib import Path

import aiohttp

from models.resolution import Resolved

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOADS_DIR = Path.home() / "Downloads" / "BeatFinderMP3"
CHUNK_SIZE = 64 * 1024


class DownloadError(Exception):
    """Audio file could not be fetched or written."""

    pass


class AudioDownloader:
    """Streams a resolved audio URL to disk."""

    def __init__(self, output_dir: str | Path = DEFAULT_DOWNLOADS_DIR, timeout_seconds: float = 300):
        self.output_dir = Path(output_dir)
        self.timeout_seconds = timeout_seconds

    async def download(self, resolved: Resolved) -> Path:
        """Download the audio behind a Resolved result.

        Args:
            resolved: Result from the Resolver

        Returns:
            Path of the written file

        Raises:
            DownloadError: On HTTP, network or file errors
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / resolved.suggested_filename
        partial_path = output_path.with_name(output_path.name + ".part")

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(resolved.audio_url) as response:
                    if response.status != 200:
                        raise DownloadError(f"Download failed with status {response.status}")

                    with open(partial_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            f.write(chunk)

            partial_path.replace(output_path)
        except aiohttp.ClientError as e:
            partial_path.unlink(missing_ok=True)
            raise DownloadError(f"Network error downloading {resolved.suggested_filename}: {e}") from e
        except OSError as e:
            partial_path.unlink(missing_ok=True)
            raise DownloadError(f"File error saving {resolved.suggested_filename}: {e}") from e
        except DownloadError:
            partial_path.unlink(missing_ok=True)
            raise

        logger.info(f"Saved {output_path.name} to {self.output_dir}")
        return output_path
