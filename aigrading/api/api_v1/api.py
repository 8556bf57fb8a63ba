from fastapi import APIRouter
from aigrading.api.api_v1.endpoints import auto_grade, grading, utils

api_router = APIRouter()
api_router.include_router(grading.router, prefix="/grading", tags=["grading"])
api_router.include_router(auto_grade.router, prefix="/auto-grade", tags=["auto-grade"])
api_router.include_router(utils.router, prefix="/utils", tags=["utils"])
