"""HTTP routes for learntube."""

from learntube.app.api.youtube import router as youtube_router

__all__ = ["youtube_router"]
