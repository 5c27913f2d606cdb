from fastapi import APIRouter
from boxoffice.features.fulfillment.api import router as fulfillment_router

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(fulfillment_router)
