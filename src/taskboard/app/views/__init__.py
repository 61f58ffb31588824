from __future__ import annotations

from fastapi import APIRouter

from . import account, auth, dashboard

router = APIRouter()
router.include_router(dashboard.router)
router.include_router(auth.router)
router.include_router(account.router)

__all__ = ["router"]
