"""
eduprogress/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from eduprogress.routes import progress

router = APIRouter()

router.include_router(progress.router)
