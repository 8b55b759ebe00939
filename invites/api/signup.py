"""Signup endpoints (public)."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from invites.api.deps import get_controller
from invites.core.config import settings
from invites.schemas.invites import (
    FailureKind,
    InviteStatusResponse,
    RedeemFailure,
    RegistrationRequest,
    SignupRequest,
    SignupResponse,
)
from invites.services.invites import InviteController
from invites.services.tokens import redact

logger = logging.getLogger(__name__)

router = APIRouter()

# Landing route for the links handed out by POST /api/v1/invites
landing_router = APIRouter()

SIGNUP_PATH = "/api/v1/signup"

_FAILURE_STATUS = {
    FailureKind.TOKEN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.REMOTE_REJECTED: status.HTTP_400_BAD_REQUEST,
    FailureKind.TRANSPORT_ERROR: status.HTTP_502_BAD_GATEWAY,
    FailureKind.PROTOCOL_ERROR: status.HTTP_502_BAD_GATEWAY,
}


@landing_router.get("/signup/", response_model=InviteStatusResponse)
def invite_status(
    token: str = Query(..., min_length=1, max_length=255),
    controller: InviteController = Depends(get_controller),
):
    """Check an invite link before showing the signup form."""
    expires_at = controller.invite_expiry(token)
    if expires_at is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "kind": FailureKind.TOKEN_NOT_FOUND.value,
                "message": "The invite token does not exist or has expired",
            },
        )

    return InviteStatusResponse(
        token=token,
        expires_at=expires_at,
        signup_url=f"{settings.public_url.rstrip('/')}{SIGNUP_PATH}",
    )


@router.post("/signup", response_model=SignupResponse)
def signup(
    request: SignupRequest,
    controller: InviteController = Depends(get_controller),
):
    """Redeem an invite token and create the account."""
    if request.password != request.password_confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password confirmation does not match the password.",
        )

    logger.info(f"Processing invite for token {redact(request.token)}, user {request.user_name}")
    result = controller.redeem_token(
        RegistrationRequest(
            token=request.token,
            user_name=request.user_name,
            password=request.password,
            registration_secret=settings.synapse_registration_secret,
        )
    )

    if isinstance(result, RedeemFailure):
        detail = {"kind": result.kind.value, "message": result.message}
        if result.errcode:
            detail["errcode"] = result.errcode
        if result.error:
            detail["error"] = result.error
        raise HTTPException(status_code=_FAILURE_STATUS[result.kind], detail=detail)

    return SignupResponse(
        user_id=result.user_id,
        server_url=settings.synapse_public_url,
    )
