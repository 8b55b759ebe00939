"""FastAPI dependencies."""
from invites.services.invites import InviteController, get_invite_controller


def get_controller() -> InviteController:
    """Dependency to get the process-wide invite controller."""
    return get_invite_controller()
