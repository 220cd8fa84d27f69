# dental_clinic/api/router.py
from fastapi import APIRouter
from dental_clinic.api import (
    routes_auth,
    routes_visits,
    routes_inventory,
    routes_notifications,
)

api_router = APIRouter()

api_router.include_router(routes_auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(routes_visits.router, prefix="/visits", tags=["visits"])
api_router.include_router(routes_inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(routes_notifications.router, prefix="/notifications", tags=["notifications"])
