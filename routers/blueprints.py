"""Helper to register all router modules."""

from __future__ import annotations

from fastapi import FastAPI

from . import auth, gatepass, health

# Ordered registry of router modules
MODULES = [
    health,
    auth,
    gatepass,
]


# Attach initialized routers to the app
# register_blueprints routine
def register_blueprints(app: FastAPI) -> None:
    """Attach all routers to the given FastAPI app."""
    for mod in MODULES:
        app.include_router(mod.router)
