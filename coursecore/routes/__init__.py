"""
coursecore/routes/__init__.py
HTTP adapters over the core services. No authorization happens here.
"""
from fastapi import APIRouter, Request

from coursecore.services.registry import CoreServices


def get_services(request: Request) -> CoreServices:
    """Dependency: the CoreServices built by the app factory."""
    return request.app.state.services


def build_router() -> APIRouter:
    from coursecore.routes import content, curriculum, progress, dashboard, users

    router = APIRouter()
    router.include_router(content.router)
    router.include_router(users.router)
    router.include_router(curriculum.router)
    router.include_router(progress.router)
    router.include_router(dashboard.router)
    return router
