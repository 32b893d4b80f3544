from fastapi import APIRouter

from clinic.api.v1.endpoints import auth
from clinic.api.v1.endpoints import appointments
from clinic.api.v1.endpoints import admin

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
