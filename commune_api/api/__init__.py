"""API routes, mounted under API_PREFIX."""

from fastapi import APIRouter

from commune_api.api import (
    auth,
    contact,
    gallery,
    health,
    investments,
    news,
    procedures,
    projects,
    public_services,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(news.router, prefix="/news", tags=["news"])
router.include_router(public_services.router, prefix="/services", tags=["services"])
router.include_router(projects.router, prefix="/projects", tags=["projects"])
router.include_router(investments.router, prefix="/investments", tags=["investments"])
# Path casing kept for existing front-end clients.
router.include_router(procedures.router, prefix="/Procedures", tags=["procedures"])
router.include_router(gallery.router, prefix="/gallery", tags=["gallery"])
router.include_router(contact.router, prefix="/contact", tags=["contact"])
