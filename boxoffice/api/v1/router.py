from fastapi import APIRouter

# Public: shows, seat map, holds
from boxoffice.api.v1.public.shows import router as shows_router

# Public: bookings
from boxoffice.api.v1.public.bookings import router as bookings_router

# Admin
from boxoffice.api.v1.admin.shows import router as admin_shows_router
from boxoffice.api.v1.admin.maintenance import router as maintenance_router

api_router = APIRouter()

# --- Public: shows & seat holds ---
api_router.include_router(shows_router)

# --- Public: bookings ---
api_router.include_router(bookings_router)

# --- Admin ---
api_router.include_router(admin_shows_router)
api_router.include_router(maintenance_router)
