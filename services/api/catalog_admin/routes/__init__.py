"""API routes."""

from fastapi import APIRouter

from catalog_admin.routes import console, sections, shell

api_router = APIRouter()

# Shell endpoints (sidebar, section metadata)
api_router.include_router(shell.router, prefix="/v1/shell", tags=["shell"])

# Section endpoints (stateless CRUD per collection)
api_router.include_router(sections.router, prefix="/v1/sections", tags=["sections"])

# Console endpoints (stateful dashboard sessions)
api_router.include_router(console.router, prefix="/v1/console", tags=["console"])
