from fastapi import APIRouter
from .auth import router as auth_router
from .monitors import router as monitors_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(monitors_router)
