from fastapi import APIRouter

from . import accounts, admin, bookings, contacts, services, testimonials, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings.router)
api_router.include_router(contacts.router)
api_router.include_router(services.router)
api_router.include_router(testimonials.router)
api_router.include_router(accounts.router)
api_router.include_router(users.router)
api_router.include_router(admin.router)
