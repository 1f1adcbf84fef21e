# stackgen/routers/health.py

import logging

from fastapi import APIRouter
from starlette.status import HTTP_200_OK

router = APIRouter(tags=["Healthz"])


@router.get(
    "/healthz",
    status_code=HTTP_200_OK,
    summary="Health Check",
    response_description="Health Status",
)
async def healthz():
    logging.getLogger("healthz").debug("Health check endpoint called")
    return {"status": "running"}
