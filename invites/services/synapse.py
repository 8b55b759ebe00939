"""Synapse Admin API registration client."""
import json
import logging
from typing import Optional, Type, Union

import httpx
from pydantic import BaseModel, ValidationError

from invites.core.config import settings
from invites.core.security import generate_registration_mac
from invites.schemas.synapse import (
    ApiError,
    NonceResponse,
    NonceResult,
    RegisterRequest,
    RegisterResponse,
    RegisterResult,
)

logger = logging.getLogger(__name__)

REGISTER_PATH = "/_synapse/admin/v1/register"
USER_AGENT = "matrix-invite-server/0.1.0"


class SynapseClientError(Exception):
    """Base class for failures talking to the Synapse Admin API."""


class TransportError(SynapseClientError):
    """The admin API could not be reached, or did not answer in time."""


class ProtocolError(SynapseClientError):
    """The admin API answered with something that is not the expected JSON."""


class SynapseClient:
    """An extremely minimal client for Synapse shared-secret registration."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url
        self.client = httpx.Client(
            base_url=base_url,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
            transport=transport,
        )

    def request_nonce(self) -> NonceResult:
        """
        Ask the admin API for a registration nonce.

        Returns:
            NonceResponse, or ApiError if the server refused

        Raises:
            TransportError: The server could not be reached
            ProtocolError: The response was not the expected JSON
        """
        response = self._send("GET", REGISTER_PATH)
        return self._parse_response(response, NonceResponse)

    def register(
        self,
        shared_secret: str,
        nonce: str,
        user_name: str,
        password: str,
    ) -> RegisterResult:
        """
        Register a non-admin user with a signed request.

        Args:
            shared_secret: The server's registration_shared_secret
            nonce: Nonce obtained from request_nonce()
            user_name: Local part of the new user ID
            password: Password for the new user

        Returns:
            RegisterResponse, or ApiError if the server refused
        """
        request = RegisterRequest(
            nonce=nonce,
            username=user_name,
            password=password,
            mac=generate_registration_mac(shared_secret, nonce, user_name, password),
        )
        response = self._send("POST", REGISTER_PATH, json=request.model_dump())
        return self._parse_response(response, RegisterResponse)

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timed out contacting {self.base_url}: {e}") from e
        except httpx.TransportError as e:
            raise TransportError(f"Could not contact {self.base_url}: {e}") from e

        logger.debug(f"{method} {response.request.url} status {response.status_code}")
        return response

    def _parse_response(
        self,
        response: httpx.Response,
        response_class: Type[BaseModel],
    ) -> Union[BaseModel, ApiError]:
        content_type = response.headers.get("content-type", "application/octet-stream")
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type != "application/json":
            raise ProtocolError(
                f"Server responded with an unexpected content type '{content_type}'"
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError(f"Server responded with malformed JSON: {e}") from e

        if response.status_code >= 400:
            # Error statuses are always errors, whatever the body looks like
            body = data if isinstance(data, dict) else {}
            parsed = ApiError(
                errcode=str(body.get("errcode") or "M_UNKNOWN"),
                error=str(body.get("error") or f"Server responded with status {response.status_code}"),
            )
        else:
            try:
                parsed = response_class.model_validate(data)
            except ValidationError as e:
                raise ProtocolError(
                    f"Unexpected {response_class.__name__} payload: {e}"
                ) from e

        logger.debug(f"Received {parsed!r}")
        return parsed

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# Global instance (can be reused)
_synapse_client: Optional[SynapseClient] = None


def get_synapse_client() -> SynapseClient:
    """Get or create Synapse client instance."""
    global _synapse_client
    if _synapse_client is None:
        _synapse_client = SynapseClient(
            settings.synapse_admin_url,
            timeout=settings.synapse_timeout_seconds,
        )
    return _synapse_client
