from fastapi import APIRouter
from app.api.v1.auth import routes as auth
from app.api.v1.beds import routes as beds
from app.api.v1.equipment import routes as equipment

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(beds.router)
api_router.include_router(equipment.router)
