"""HTTP API routers"""
from fastapi import APIRouter
from app.api.endpoints import tasks, system

api_router = APIRouter()
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(system.router, tags=["system"])
