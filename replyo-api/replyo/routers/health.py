from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def api_health(request: Request):
    """Liveness plus the list of routes served by this instance."""
    routes = sorted(
        {f"{','.join(sorted(route.methods or []))} {route.path}" for route in request.app.routes if hasattr(route, "methods")}
    )
    return {
        "success": True,
        "message": "Replyo API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "routes": routes,
    }
