"""Dependencies for FastAPI dependency injection.

The directory client is built once in the application lifespan and stored on
``app.state``; handlers receive it through ``DirectoryDep``.

Usage:
    @router.get("/trending")
    async def trending(directory: DirectoryDep):
        videos, meta = await directory.get_trending_videos()
"""

from typing import Annotated

from fastapi import Depends, Request

from learntube.app.services.video_directory import VideoDirectoryClient


def get_directory(request: Request) -> VideoDirectoryClient:
    directory = getattr(request.app.state, "directory", None)
    if directory is None:
        raise RuntimeError("Video directory not initialized. Ensure lifespan context is active.")
    return directory


# Usage: async def handler(directory: DirectoryDep)
DirectoryDep = Annotated[VideoDirectoryClient, Depends(get_directory)]

__all__ = ["DirectoryDep", "get_directory"]
