"""MP3 download routes for the BeatFinder API."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_resolver
from api.schemas import DownloadFailedResponse, DownloadRequest, DownloadResponse
from models.resolution import Resolved, TimedOut
from services.resolver import Resolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Download"])

FAILURE_MESSAGE = "Could not get the audio. Try again later or use the download tool."


@router.post(
    "/api/download",
    summary="Resolve MP3",
    description="Resolve a video to a downloadable MP3 URL through the backend fallback chain.",
    response_model=DownloadResponse,
    responses={502: {"model": DownloadFailedResponse, "description": "Every backend failed"}},
)
async def download(request: DownloadRequest, resolver: Resolver = Depends(get_resolver)):
    """Resolve a video id to an audio URL."""
    result = await resolver.resolve(request.video_id, title=request.title)

    if isinstance(result, Resolved):
        return DownloadResponse(
            url=result.audio_url,
            filename=result.suggested_filename,
            bitrate_kbps=result.bitrate_kbps,
            backend=result.backend_name,
        )

    body = DownloadFailedResponse(
        error=FAILURE_MESSAGE,
        status="timeout" if isinstance(result, TimedOut) else "exhausted",
        attempts=[a.to_dict() for a in result.attempts],
        hint=result.hint.to_dict() if result.hint else None,
    )
    return JSONResponse(status_code=502, content=body.model_dump())
