#!/usr/bin/env python
"""FastAPI server for the BeatFinder web client."""

import sys
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api import dependencies
from api.routers import download, rankings, search, users
from api.schemas import HealthResponse
from utils.logging import bind_request, bind_user, clear_request, get_logger, setup_logging

config = dependencies.get_config()
setup_logging(config["log_level"], json_output=config["json_logs"])
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await dependencies.startup()
    logger.info("beatfinder_api_started", database=config["database_path"])
    try:
        yield
    finally:
        await dependencies.shutdown()
        logger.info("beatfinder_api_stopped")


app = FastAPI(title="BeatFinder API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config["cors_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line emitted while handling a request with its id."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    bind_request(request_id, request.method, request.url.path)
    start = time.perf_counter()
    try:
        response = await call_next(request)
        user = getattr(request.state, "user", None)
        if user:
            bind_user(user)
        logger.info(
            "request_completed",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
    finally:
        clear_request()
    response.headers["x-request-id"] = request_id
    return response


app.include_router(download.router)
app.include_router(rankings.router)
app.include_router(users.router)
app.include_router(search.router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "BeatFinder API", "version": "1.0.0"}


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
