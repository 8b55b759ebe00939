"""FastAPI application entry points."""
import asyncio
import logging

import uvicorn
from fastapi import FastAPI

from invites.core.config import settings
from invites.api import health, signup
from invites.api import invites as invite_routes
from invites.services.invites import get_invite_controller

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Public app: users redeem invites here
app = FastAPI(
    title=settings.server_title,
    description="Invite-only account registration for a Matrix server",
    version="0.1.0",
)
app.include_router(health.router, tags=["health"])
app.include_router(signup.router, prefix="/api/v1", tags=["signup"])
app.include_router(signup.landing_router, tags=["signup"])

# Private app: operators issue invites here
admin_app = FastAPI(
    title=f"{settings.server_title} (admin)",
    description="Invite issuing for operators",
    version="0.1.0",
)
admin_app.include_router(health.router, tags=["health"])
admin_app.include_router(invite_routes.router, prefix="/api/v1", tags=["invites"])


@app.on_event("startup")
@admin_app.on_event("startup")
async def startup_event():
    """Build the controller up front so a broken random source stops startup."""
    get_invite_controller()


async def _serve_all():
    servers = [
        uvicorn.Server(uvicorn.Config(app, host=settings.public_host, port=settings.public_port)),
        uvicorn.Server(uvicorn.Config(admin_app, host=settings.private_host, port=settings.private_port)),
    ]
    await asyncio.gather(*(server.serve() for server in servers))


def serve():
    """Run the public and private applications."""
    asyncio.run(_serve_all())


if __name__ == "__main__":
    serve()
