"""HTTP routes."""

from fastapi import APIRouter

from acquisitions.api import auth, health, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/api/auth", tags=["auth"])
router.include_router(users.router, prefix="/api/users", tags=["users"])
