"""Invite controller: one token authorizes exactly one registration."""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from invites.core.config import settings
from invites.schemas.invites import (
    FailureKind,
    IssuedInvite,
    RedeemFailure,
    RedeemResult,
    RedeemSuccess,
    RegistrationRequest,
)
from invites.schemas.synapse import ApiError
from invites.services.synapse import (
    ProtocolError,
    SynapseClient,
    TransportError,
    get_synapse_client,
)
from invites.services.tokens import TokenStore, redact

logger = logging.getLogger(__name__)


class InviteController:
    """
    Issues invite tokens and redeems them against the Synapse Admin API.

    Redemptions of the same token are serialized: the second of two
    concurrent redeemers waits for the first, then finds the token gone.
    The store itself is never locked across a network round trip.
    """

    def __init__(self, store: TokenStore, client: SynapseClient):
        self.store = store
        self.client = client
        self._redeem_locks: Dict[str, List] = {}
        self._redeem_locks_guard = threading.Lock()

    @contextmanager
    def _redeeming(self, token: str) -> Iterator[None]:
        # Each entry is [lock, number of holders and waiters]
        with self._redeem_locks_guard:
            entry = self._redeem_locks.setdefault(token, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._redeem_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._redeem_locks[token]

    def issue_token(self) -> IssuedInvite:
        """Generate a fresh invite token."""
        token, expires_at = self.store.issue()
        logger.info(f"Issued invite token expiring at {expires_at.isoformat()}")
        return IssuedInvite(token=token, expires_at=expires_at)

    def expiry_for_display(self, now: Optional[datetime] = None) -> datetime:
        """When a token issued now would expire."""
        return (now or datetime.now(timezone.utc)) + self.store.expiry

    def invite_expiry(self, token: str) -> Optional[datetime]:
        """Expiry of a live token, or None if it cannot be redeemed."""
        expires_at = self.store.expires_at(token)
        if expires_at is None:
            logger.warning(f"Nonexistent token: {redact(token)}")
        return expires_at

    def token_count(self) -> int:
        """Number of live tokens."""
        return self.store.count()

    def redeem_token(self, request: RegistrationRequest) -> RedeemResult:
        """
        Register a new user on behalf of an invite token holder.

        The token is consumed only after the admin API has accepted the
        registration. Any failure leaves a live token live.

        Args:
            request: Token, user name, password and registration secret

        Returns:
            RedeemSuccess, or RedeemFailure describing why nothing happened
        """
        token = request.token

        with self._redeeming(token):
            if not self.store.is_live(token):
                logger.warning(f"Nonexistent token: {redact(token)}")
                return RedeemFailure(
                    kind=FailureKind.TOKEN_NOT_FOUND,
                    message="The invite token does not exist or has expired",
                )

            try:
                nonce_response = self.client.request_nonce()
                if isinstance(nonce_response, ApiError):
                    return self._remote_failure("nonce", token, nonce_response)

                register_response = self.client.register(
                    request.registration_secret,
                    nonce_response.nonce,
                    request.user_name,
                    request.password,
                )
                if isinstance(register_response, ApiError):
                    return self._remote_failure("register", token, register_response)
            except TransportError as e:
                logger.error(f"Transport error redeeming token {redact(token)}: {e}")
                return RedeemFailure(kind=FailureKind.TRANSPORT_ERROR, message=str(e))
            except ProtocolError as e:
                logger.error(f"Protocol error redeeming token {redact(token)}: {e}")
                return RedeemFailure(kind=FailureKind.PROTOCOL_ERROR, message=str(e))

            consumed = self.store.consume(token)

        if consumed:
            logger.info(
                f"Consumed token {redact(token)} for user '{request.user_name}' "
                f"({self.store.count()} tokens left)"
            )
        else:
            # The account exists remotely; the token lapsed mid-handshake
            logger.warning(f"Token {redact(token)} expired while registering '{request.user_name}'")
        return RedeemSuccess(
            user_id=register_response.user_id,
            home_server=register_response.home_server,
            device_id=register_response.device_id,
        )

    def _remote_failure(self, step: str, token: str, error: ApiError) -> RedeemFailure:
        logger.error(
            f"Admin API refused {step} for token {redact(token)}: {error.errcode} {error.error}"
        )
        return RedeemFailure(
            kind=FailureKind.REMOTE_REJECTED,
            message=f"The server refused the registration: {error.errcode}: {error.error}",
            errcode=error.errcode,
            error=error.error,
        )


# Global instance (can be reused)
_invite_controller: Optional[InviteController] = None


def get_invite_controller() -> InviteController:
    """Get or create the process-wide invite controller."""
    global _invite_controller
    if _invite_controller is None:
        store = TokenStore(settings.token_expiry, token_bytes=settings.token_bytes)
        _invite_controller = InviteController(store, get_synapse_client())
    return _invite_controller
