"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import admin, agent, auth, databases, health, infrastructure, pin, security, services, sql

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(pin.router, prefix="/pin", tags=["pin"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(agent.router, prefix="/agent", tags=["agent"])
router.include_router(databases.router, prefix="/databases", tags=["databases"])
router.include_router(services.router, prefix="/services", tags=["services"])
router.include_router(infrastructure.router, prefix="/infrastructure", tags=["infrastructure"])
router.include_router(sql.router, prefix="/sql", tags=["sql"])
router.include_router(security.router, prefix="/security", tags=["security"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
