from fastapi import APIRouter

from datasync.routers import sync_plan

api_router = APIRouter()
api_router.include_router(sync_plan.router)
