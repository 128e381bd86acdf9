"""Unit tests for the multi-tier audio resolver.

Uses scripted in-memory backends so every outcome (success, no result,
explicit error, unexpected exception, timeout, manual handoff) can be
arranged per test without network access. The deadline tests at the end
run against a slow local aiohttp relay instead.
"""

import asyncio
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from aiohttp import web

from api import dependencies
from models.beat import VideoRef
from models.resolution import (
    AttemptOutcome,
    BackendTier,
    Exhausted,
    ManualHandoff,
    Resolved,
    TimedOut,
)
from services.extraction_backends import (
    BackendError,
    ExtractionBackend,
    ManualFallbackBackend,
    build_default_backends,
)
from services.resolver import Resolver


class ScriptedBackend(ExtractionBackend):
    """Backend whose invoke() behaviour is fixed at construction."""

    def __init__(self, name, priority=0, tier=BackendTier.DIRECT, behaviour=None, timeout_seconds=1.0, configured=True):
        self.tier = tier
        super().__init__(name, priority, timeout_seconds)
        self.behaviour = behaviour
        self.configured = configured
        self.calls = 0

    async def invoke(self, video: VideoRef, title: Optional[str] = None):
        self.calls += 1
        behaviour = self.behaviour
        if behaviour == "hang":
            await asyncio.sleep(60)
        if isinstance(behaviour, BaseException):
            raise behaviour
        if behaviour == "resolve":
            return Resolved(
                audio_url=f"https://{self.name}/{video.video_id}.mp3",
                suggested_filename=f"{title or video.video_id}.mp3",
                backend_name=self.name,
            )
        return None

    def is_configured(self) -> bool:
        return self.configured


class TestResolverOrdering:
    """Backends are tried by tier, then priority."""

    def test_sorted_by_tier_then_priority(self):
        """Construction order does not matter."""
        manual = ScriptedBackend("manual", priority=0, tier=BackendTier.MANUAL)
        proxy = ScriptedBackend("proxy", priority=0, tier=BackendTier.PROXY)
        direct_b = ScriptedBackend("direct-b", priority=1)
        direct_a = ScriptedBackend("direct-a", priority=0)

        resolver = Resolver([manual, proxy, direct_b, direct_a])

        assert [b.name for b in resolver.backends] == ["direct-a", "direct-b", "proxy", "manual"]

    @pytest.mark.asyncio
    async def test_first_success_stops_the_chain(self):
        """A fails, B succeeds, C is never invoked."""
        a = ScriptedBackend("a", priority=0, behaviour=BackendError("rate limited"))
        b = ScriptedBackend("b", priority=1, behaviour="resolve")
        c = ScriptedBackend("c", priority=2, behaviour="resolve")

        result = await Resolver([a, b, c]).resolve("vid1", title="Beat")

        assert isinstance(result, Resolved)
        assert result.backend_name == "b"
        assert result.suggested_filename == "Beat.mp3"
        assert (a.calls, b.calls, c.calls) == (1, 1, 0)

    @pytest.mark.asyncio
    async def test_no_backend_is_retried(self):
        """Each backend is invoked at most once per resolve call."""
        backends = [ScriptedBackend(f"b{i}", priority=i) for i in range(3)]

        await Resolver(backends).resolve("vid1")

        assert [b.calls for b in backends] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_unconfigured_backend_is_skipped(self):
        """Backends reporting is_configured() False are not invoked or logged."""
        skipped = ScriptedBackend("skipped", priority=0, behaviour="resolve", configured=False)
        used = ScriptedBackend("used", priority=1, behaviour="resolve")

        result = await Resolver([skipped, used]).resolve("vid1")

        assert result.backend_name == "used"
        assert skipped.calls == 0


class TestResolverFailures:
    """Failures are recorded, never raised."""

    @pytest.mark.asyncio
    async def test_exhausted_records_every_attempt(self):
        """No-result and error outcomes produce Exhausted with one log per backend."""
        backends = [
            ScriptedBackend("empty", priority=0),
            ScriptedBackend("reported", priority=1, behaviour=BackendError("cobalt error: login")),
            ScriptedBackend("crashed", priority=2, behaviour=KeyError("url")),
        ]

        result = await Resolver(backends).resolve("vid1")

        assert isinstance(result, Exhausted)
        assert [a.backend_name for a in result.attempts] == ["empty", "reported", "crashed"]
        assert [a.outcome for a in result.attempts] == [
            AttemptOutcome.NO_RESULT,
            AttemptOutcome.ERROR,
            AttemptOutcome.ERROR,
        ]
        assert result.attempts[1].detail == "cobalt error: login"
        assert "KeyError" in result.attempts[2].detail
        assert result.hint is None

    @pytest.mark.asyncio
    async def test_hung_backend_times_out_and_chain_continues(self):
        """A backend exceeding its deadline does not block later backends."""
        slow = ScriptedBackend("slow", priority=0, behaviour="hang", timeout_seconds=0.05)
        fast = ScriptedBackend("fast", priority=1, behaviour="resolve")

        result = await asyncio.wait_for(Resolver([slow, fast]).resolve("vid1"), timeout=5)

        assert isinstance(result, Resolved)
        assert result.backend_name == "fast"

    @pytest.mark.asyncio
    async def test_timed_out_when_any_attempt_timed_out(self):
        """Failure after a timeout is reported as TimedOut."""
        backends = [
            ScriptedBackend("slow", priority=0, behaviour="hang", timeout_seconds=0.05),
            ScriptedBackend("empty", priority=1),
        ]

        result = await Resolver(backends).resolve("vid1")

        assert isinstance(result, TimedOut)
        assert result.attempts[0].outcome is AttemptOutcome.TIMEOUT

    @pytest.mark.asyncio
    async def test_http_client_timeout_counts_as_timeout(self):
        """httpx timeouts raised inside a backend are classified as timeouts."""
        backend = ScriptedBackend("read-timeout", behaviour=httpx.ReadTimeout("slow read"))

        result = await Resolver([backend]).resolve("vid1")

        assert isinstance(result, TimedOut)
        assert result.attempts[0].outcome is AttemptOutcome.TIMEOUT

    @pytest.mark.asyncio
    async def test_empty_chain_is_exhausted(self):
        result = await Resolver([]).resolve("vid1")
        assert isinstance(result, Exhausted)
        assert result.attempts == []


class TestManualTier:
    """The manual tier produces a hint instead of an audio URL."""

    @pytest.mark.asyncio
    async def test_manual_tier_runs_last_and_supplies_hint(self):
        """All automated tiers fail; the manual handoff is attached to the result."""
        handoffs = []
        manual = ManualFallbackBackend(tool_url="https://tool/{video_id}", handoff=handoffs.append)
        failing = ScriptedBackend("cobalt", behaviour=BackendError("down"))

        result = await Resolver([manual, failing]).resolve("vid1")

        assert isinstance(result, Exhausted)
        assert isinstance(result.hint, ManualHandoff)
        assert result.hint.tool_url == "https://tool/vid1"
        assert [a.backend_name for a in result.attempts] == ["cobalt", "manual"]
        assert result.attempts[-1].outcome is AttemptOutcome.NO_RESULT
        assert handoffs == [result.hint]

    @pytest.mark.asyncio
    async def test_timed_out_result_keeps_hint(self):
        slow = ScriptedBackend("slow", behaviour="hang", timeout_seconds=0.05)
        manual = ManualFallbackBackend()

        result = await Resolver([slow, manual]).resolve("vid1")

        assert isinstance(result, TimedOut)
        assert result.hint is not None

    @pytest.mark.asyncio
    async def test_manual_tier_not_reached_on_success(self):
        handoffs = []
        manual = ManualFallbackBackend(handoff=handoffs.append)
        working = ScriptedBackend("cobalt", behaviour="resolve")

        result = await Resolver([manual, working]).resolve("vid1")

        assert isinstance(result, Resolved)
        assert handoffs == []


@pytest_asyncio.fixture
async def slow_relay():
    """Local relay whose /api/download reply is held back by a per-test delay."""
    delay = {"seconds": 0.0}

    async def download(request):
        body = await request.json()
        await asyncio.sleep(delay["seconds"])
        return web.json_response(
            {"status": "tunnel", "url": f"https://relay.example.com/{body['videoId']}.mp3", "filename": "slow.mp3"}
        )

    app = web.Application()
    app.router.add_post("/api/download", download)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    try:
        yield f"http://{host}:{port}", delay
    finally:
        await runner.cleanup()


class TestNetworkDeadlines:
    """Backend deadlines hold against a real slow HTTP server."""

    @pytest.fixture
    def relay_only_config(self, sample_config, slow_relay):
        url, _ = slow_relay
        sample_config.update(
            cobalt_instances=[],
            piped_instances=[],
            ytdlp_enabled=False,
            manual_tool_url="",
            proxy_url=url,
            proxy_timeout_seconds=3.0,
        )
        return sample_config

    @pytest.mark.asyncio
    async def test_backend_deadline_outlives_client_default(self, relay_only_config, slow_relay):
        """A reply inside the backend deadline resolves even past the client's own timeout."""
        _, delay = slow_relay
        delay["seconds"] = 0.6

        async with httpx.AsyncClient(timeout=0.2) as client:
            result = await Resolver(build_default_backends(relay_only_config, client=client)).resolve("vid1")

        assert isinstance(result, Resolved)
        assert result.suggested_filename == "slow.mp3"
        assert result.backend_name.startswith("proxy:")

    @pytest.mark.asyncio
    async def test_shared_client_has_no_default_timeout(self, relay_only_config, slow_relay, monkeypatch):
        _, delay = slow_relay
        delay["seconds"] = 0.6
        monkeypatch.setattr(dependencies, "_http_client", None)
        client = dependencies.get_http_client()
        assert client.timeout == httpx.Timeout(None)

        try:
            result = await Resolver(build_default_backends(relay_only_config, client=client)).resolve("vid1")
        finally:
            await client.aclose()

        assert isinstance(result, Resolved)

    @pytest.mark.asyncio
    async def test_reply_after_deadline_times_out(self, relay_only_config, slow_relay):
        _, delay = slow_relay
        delay["seconds"] = 1.0
        relay_only_config["proxy_timeout_seconds"] = 0.3

        async with httpx.AsyncClient(timeout=None) as client:
            result = await Resolver(build_default_backends(relay_only_config, client=client)).resolve("vid1")

        assert isinstance(result, TimedOut)
        assert result.attempts[0].outcome is AttemptOutcome.TIMEOUT
