"""Unit tests for saving resolved audio to disk."""

import pytest
import pytest_asyncio
from aiohttp import web

from models.resolution import Resolved
from services.audio_downloader import AudioDownloader, DownloadError

AUDIO_BYTES = b"ID3" + bytes(range(256)) * 64


@pytest_asyncio.fixture
async def audio_server():
    """Local aiohttp server serving a fake MP3 and a 404."""

    async def audio(request):
        return web.Response(body=AUDIO_BYTES, content_type="audio/mpeg")

    async def missing(request):
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/beat.mp3", audio)
    app.router.add_get("/gone.mp3", missing)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    try:
        yield f"http://{host}:{port}"
    finally:
        await runner.cleanup()


class TestAudioDownloader:
    """Tests for AudioDownloader."""

    @pytest.mark.asyncio
    async def test_download_writes_file(self, audio_server, tmp_path):
        resolved = Resolved(audio_url=f"{audio_server}/beat.mp3", suggested_filename="Dark Beat.mp3")

        path = await AudioDownloader(tmp_path).download(resolved)

        assert path == tmp_path / "Dark Beat.mp3"
        assert path.read_bytes() == AUDIO_BYTES
        assert not (tmp_path / "Dark Beat.mp3.part").exists()

    @pytest.mark.asyncio
    async def test_http_error_leaves_no_file(self, audio_server, tmp_path):
        resolved = Resolved(audio_url=f"{audio_server}/gone.mp3", suggested_filename="gone.mp3")

        with pytest.raises(DownloadError, match="404"):
            await AudioDownloader(tmp_path).download(resolved)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unreachable_host(self, tmp_path):
        resolved = Resolved(audio_url="http://127.0.0.1:1/beat.mp3", suggested_filename="beat.mp3")

        with pytest.raises(DownloadError):
            await AudioDownloader(tmp_path, timeout_seconds=5).download(resolved)
