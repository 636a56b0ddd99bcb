"""YouTube endpoints backed by the video directory.

Directory results carry an HTTP-equivalent status in ``meta.status_code``;
handlers forward it so that fallbacks caused by quota exhaustion surface as
503 while still returning usable sample data.
"""

import math
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from learntube.app.api.deps import DirectoryDep
from learntube.app.core.logging import get_log_context, get_logger
from learntube.app.middleware.request_id import get_request_id
from learntube.app.services.fallback import QUOTA_EXCEEDED_MESSAGE
from learntube.app.services.models import DirectoryResult
from learntube.app.services.quota import usage_status
from learntube.app.services.video_directory import VideoDirectoryClient

router = APIRouter(prefix="/api/youtube", tags=["youtube"])
logger = get_logger(__name__)


class QuotaActionRequest(BaseModel):
    """Schema for quota admin actions."""

    action: str


class QuotaActionResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
    timestamp: str


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _envelope(
    field: str, result: DirectoryResult, directory: VideoDirectoryClient, request: Request
) -> JSONResponse:
    """Render a directory result as a JSON response with its status code."""
    items, meta = result
    body: dict[str, Any] = {field: [item.to_dict() for item in items], **meta.to_dict()}
    if meta.error_kind == "quota_exceeded":
        body["error"] = QUOTA_EXCEEDED_MESSAGE
    elif meta.status_code >= 400:
        body["error"] = meta.message
    body["quota"] = directory.get_quota_info().to_dict()

    logger.info(
        f"{request.method} {request.url.path} -> {meta.source.value}",
        extra=get_log_context(
            request_id=get_request_id(request),
            source=meta.source.value,
            path=request.url.path,
            method=request.method,
            status_code=meta.status_code,
        ),
    )
    return JSONResponse(status_code=meta.status_code, content=body)


@router.get("/search")
async def search(
    request: Request,
    directory: DirectoryDep,
    q: Optional[str] = Query(None, description="Search text"),
    limit: int = Query(20, description="Result count, clamped to 1..50"),
) -> JSONResponse:
    """Search YouTube videos, falling back to sample data."""
    result = await directory.search_videos(q or "", limit)
    return _envelope("videos", result, directory, request)


@router.get("/trending")
async def trending(
    request: Request,
    directory: DirectoryDep,
    limit: int = Query(12, description="Result count, clamped to 1..50"),
) -> JSONResponse:
    """Trending Education videos, falling back to a fixed sample set."""
    result = await directory.get_trending_videos(limit)
    return _envelope("videos", result, directory, request)


@router.get("/video/{video_id}")
async def get_video(video_id: str, directory: DirectoryDep) -> JSONResponse:
    """Full details for one video."""
    items, meta = await directory.get_video(video_id)
    quota = directory.get_quota_info().to_dict()
    if not items:
        return JSONResponse(
            status_code=meta.status_code,
            content={"error": meta.message, **meta.to_dict(), "quota": quota},
        )
    return JSONResponse(
        status_code=meta.status_code,
        content={"video": items[0].to_dict(), **meta.to_dict(), "quota": quota},
    )


@router.get("/video/{video_id}/comments")
async def get_comments(
    video_id: str,
    request: Request,
    directory: DirectoryDep,
    limit: int = Query(20, description="Result count, clamped to 1..50"),
) -> JSONResponse:
    """Top-level comments; failures yield an empty list and a message."""
    result = await directory.get_video_comments(video_id, limit)
    return _envelope("comments", result, directory, request)


@router.get("/channel/{channel_id}")
async def get_channel(channel_id: str, directory: DirectoryDep) -> JSONResponse:
    """Channel profile with subscriber, video and view counts."""
    items, meta = await directory.get_channel(channel_id)
    quota = directory.get_quota_info().to_dict()
    if not items:
        return JSONResponse(
            status_code=meta.status_code,
            content={"error": meta.message, **meta.to_dict(), "quota": quota},
        )
    return JSONResponse(
        status_code=meta.status_code,
        content={"channel": items[0].to_dict(), **meta.to_dict(), "quota": quota},
    )


@router.get("/channel/{channel_id}/videos")
async def get_channel_videos(
    channel_id: str,
    request: Request,
    directory: DirectoryDep,
    limit: int = Query(20, description="Result count, clamped to 1..50"),
) -> JSONResponse:
    """Latest uploads of a channel; failures yield an empty list and a message."""
    result = await directory.get_channel_videos(channel_id, limit)
    return _envelope("videos", result, directory, request)


@router.get("/quota")
async def quota_status(directory: DirectoryDep) -> dict[str, Any]:
    """Quota usage band, time until reset and operator recommendations."""
    state = directory.get_quota_info()
    status, recommendations = usage_status(state, directory.key_pool.count())
    now = datetime.now(timezone.utc)
    hours_until_reset = math.ceil((state.reset_time - now).total_seconds() / 3600)
    return {
        "status": status.value,
        "quota": {
            **state.to_dict(),
            "usage_percentage": state.usage_percentage,
            "hours_until_reset": max(0, hours_until_reset),
        },
        "api_keys": {
            "count": directory.key_pool.count(),
            "masked": directory.key_pool.masked_keys(),
        },
        "cache_entries": len(directory.cache),
        "recommendations": recommendations,
        "timestamp": now.isoformat(),
    }


@router.delete("/quota", response_model=QuotaActionResponse)
async def clear_cache(directory: DirectoryDep) -> QuotaActionResponse:
    """Drop every cached YouTube response."""
    directory.clear_cache()
    return QuotaActionResponse(
        status="success",
        message="YouTube API cache cleared successfully",
        timestamp=_now_iso(),
    )


@router.post("/quota", response_model=QuotaActionResponse)
async def quota_action(body: QuotaActionRequest, directory: DirectoryDep) -> Any:
    """Admin actions: ``reset`` zeroes the ledger, ``clear-cache`` drops the cache."""
    if body.action == "reset":
        directory.reset_quota()
        logger.info("Quota ledger reset by admin action")
        return QuotaActionResponse(
            status="success", message="Quota usage has been reset", timestamp=_now_iso()
        )
    if body.action == "clear-cache":
        directory.clear_cache()
        return QuotaActionResponse(
            status="success", message="Cache has been cleared", timestamp=_now_iso()
        )
    return JSONResponse(
        status_code=400,
        content={
            "status": "error",
            "message": "Invalid action. Supported actions: reset, clear-cache",
            "timestamp": _now_iso(),
        },
    )
