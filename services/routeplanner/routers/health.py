"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    stop_index = getattr(request.app.state, "stop_index", None)
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "version": request.app.state.settings.app_version,
            "stopsLoaded": len(stop_index) if stop_index is not None else 0,
        },
        "requestId": request.state.request_id,
    }
