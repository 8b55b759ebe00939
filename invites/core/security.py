"""Security utilities: registration MAC signing."""
import hmac
import hashlib


def generate_registration_mac(
    shared_secret: str,
    nonce: str,
    username: str,
    password: str,
    admin: bool = False,
) -> str:
    """
    Sign a Synapse shared-secret registration request.

    The MAC is HMAC-SHA1 keyed by the shared secret over the NUL-separated
    nonce, username, password and admin flag, as lower-case hex.
    """
    mac = hmac.new(shared_secret.encode("utf-8"), digestmod=hashlib.sha1)
    mac.update(nonce.encode("utf-8"))
    mac.update(b"\x00")
    mac.update(username.encode("utf-8"))
    mac.update(b"\x00")
    mac.update(password.encode("utf-8"))
    mac.update(b"\x00")
    mac.update(b"admin" if admin else b"notadmin")
    return mac.hexdigest()
