from fastapi import APIRouter
from clinic_notifications.modules.notifications.router import router as notifications_router

api_router = APIRouter()
api_router.include_router(notifications_router, tags=["notifications"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
