from fastapi import APIRouter
from app.api import auth
from app.api import call_requests
from app.api import call_sessions
from app.api import earnings
from app.api import rtc

router = APIRouter()


@router.get("/health")
async def health():
    return {"success": True, "status": "ok"}


# Include auth, call request, call session, earnings, rtc routers
router.include_router(auth.router)
router.include_router(call_requests.router)
router.include_router(call_sessions.router)
router.include_router(earnings.router)
router.include_router(rtc.router)
