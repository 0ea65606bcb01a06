# This file loads env variables and must thus be imported before anything else.
from . import env_loader  # noqa: F401

import os
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from questionbank.errors import QuestionBankError, Unauthorized
from .models import ErrorResponse
from .routers import auth_router

"""FastAPI application setup for the question bank API.

Exposes the Google sign-in routes and the profile lookup. Question and topic
routes depend on `questionbank.app.auth.require_user` for the caller's
identity. This module configures CORS, error rendering and logging.
"""

FRONTEND_URL = os.environ["FRONTEND_URL"]

logger = logging.getLogger(__name__)

app = FastAPI()
app.include_router(auth_router)
app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Configure basic logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s - %(filename)s:%(lineno)d",
    datefmt="%Y-%m-%d %H:%M:%S",
)
# Configure the logging for the API itself if the user specifies it.
if "LOG_LEVEL" in os.environ:
    match os.environ["LOG_LEVEL"].upper():
        case "DEBUG":
            log_level = logging.DEBUG
        case "INFO":
            log_level = logging.INFO
        case "WARNING":
            log_level = logging.WARNING
        case "ERROR":
            log_level = logging.ERROR
        case "CRITICAL":
            log_level = logging.CRITICAL
        case _:
            raise ValueError(f"Invalid log level: {os.environ['LOG_LEVEL']}")
    logging.getLogger("questionbank").setLevel(log_level)


@app.exception_handler(QuestionBankError)
async def handle_question_bank_error(
    request: Request, exc: QuestionBankError
) -> JSONResponse:
    """Render domain errors as `{"error": message}` with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Render anything unhandled as a JSON 500 instead of plain text."""
    logger.exception(f"{request.method} {request.url.path} failed unexpectedly")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal server error").model_dump(),
    )


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "API is running..."}


@app.get("/health")
@app.options("/health")
def health_check(response: Response) -> dict[str, str]:
    """Health check endpoint that returns 200 status with CORS from anywhere."""
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "*"
    return {"status": "healthy"}
