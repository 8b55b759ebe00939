"""Invite endpoints (private)."""
from fastapi import APIRouter, Depends, status

from invites.api.deps import get_controller
from invites.core.config import settings
from invites.schemas.invites import InviteResponse
from invites.services.invites import InviteController

router = APIRouter()


@router.post("/invites", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
def create_invite(controller: InviteController = Depends(get_controller)):
    """Issue a new single-use invite link."""
    invite = controller.issue_token()
    return InviteResponse(
        token=invite.token,
        invite_url=settings.invite_url(invite.token),
        expires_at=invite.expires_at,
    )
