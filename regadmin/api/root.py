from fastapi import APIRouter

from regadmin.core.config import settings

router = APIRouter()

RESOURCES = ("users", "admins", "events", "spheres", "activity-logs")


@router.get("/")
def root():
    return {
        "name": "Registration Admin Backend",
        "env": settings.APP_ENV,
        "docs": "/docs",
        "health": "/health",
        "resources": [f"/{r}" for r in RESOURCES],
    }
