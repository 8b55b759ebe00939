"""Health check endpoint."""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from invites.api.deps import get_controller
from invites.services.invites import InviteController

router = APIRouter()


@router.get("/health")
def health_check(controller: InviteController = Depends(get_controller)):
    """Health check endpoint with live token count."""
    return {
        "status": "ok",
        "tokens": controller.token_count(),
        "time": datetime.now(timezone.utc).isoformat(),
    }
