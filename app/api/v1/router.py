from fastapi import APIRouter
from app.api.v1.endpoints import (
    appointments,
    auth,
    availability,
    categories,
    payments,
    services,
    staff,
    users,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(categories.router, prefix="/categories", tags=["catalog"])
api_router.include_router(services.router, prefix="/services", tags=["catalog"])
api_router.include_router(availability.router, prefix="/availability", tags=["availability"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
