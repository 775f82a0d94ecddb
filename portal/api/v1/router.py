"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from portal.api.v1.endpoints import auth, documents, records
from portal.schemas.common import ErrorResponse

# Screens behind the session answer 401 with a redirect to the login page
SESSION_ERRORS = {401: {"model": ErrorResponse, "description": "Session expired"}}

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(
    records.router,
    prefix="/records",
    tags=["Records"],
    responses={**SESSION_ERRORS, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
api_router.include_router(
    documents.router,
    prefix="/documents",
    tags=["Documents"],
    responses={**SESSION_ERRORS, 400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
