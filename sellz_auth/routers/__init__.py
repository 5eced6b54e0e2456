# sellz_auth/routers/__init__.py
import logging

from fastapi import APIRouter

from . import auth, users

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api/v1")


@api_router.get("/")
def root():
    logger.info("base API called")
    return {"success": True, "body": "Root router reached"}


api_router.include_router(users.router)
api_router.include_router(auth.router)
