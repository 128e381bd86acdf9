"""Hosted startup (Render and similar): serve the API on $PORT.

If the app fails to import (missing env, bad dependency), a stub app is
served instead so the platform's health check shows the traceback rather
than a crash loop.
"""
import os
import sys
import traceback
from pathlib import Path

import uvicorn

src_dir = Path(__file__).parent / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))


def load_app():
    try:
        from api.server import app
    except Exception as e:
        failure = f"{type(e).__name__}: {e}\n{traceback.format_exc()}"
        print(f"[start.py] BeatFinder API failed to import:\n{failure}", file=sys.stderr, flush=True)
        return build_failure_app(failure)
    return app


def build_failure_app(failure: str):
    from fastapi import FastAPI
    from fastapi.responses import PlainTextResponse

    stub = FastAPI(title="BeatFinder API (import failed)")

    @stub.get("/api/health", response_class=PlainTextResponse, status_code=503)
    async def health():
        return f"UNHEALTHY\n{failure}"

    return stub


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "10000"))
    # Logging is configured by api.server; keep uvicorn from installing its own
    uvicorn.run(load_app(), host="0.0.0.0", port=port, log_config=None)
