from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import uvicorn
import json
import argparse
import logging

from app import config
from app.database.init_db import init_db
from app.api import api_router
from app.dependencies import close_inference_client
from app.errors import PipelineError
from app.schemas import ValidationErrorItem, ErrorResponse, ErrorDetail

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for the FastAPI application."""
    # Startup
    await init_db()
    yield
    # Shutdown
    await close_inference_client()

app = FastAPI(
    title="Hotline Training Server",
    description="Session transcript pipeline for hotline counselor practice: capture, scoring and post-session review",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For development - in production, specify allowed origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health endpoint at the root level with its own tag
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "healthy", "service": "hotline-training-server"}

# Include the API router which will include all endpoints organized by their type
app.include_router(api_router, prefix="/api")

# Override the default validation error handler to provide better error responses
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors with a cleaner format.
    """
    error_items = []
    for error in exc.errors():
        error_items.append(ValidationErrorItem(
            field=".".join(str(loc) for loc in error.get("loc", [])) if "loc" in error else None,
            message=error.get("msg", "Validation error"),
            type=error.get("type", "unknown_error")
        ))

    error_response = ErrorResponse(
        status="error",
        message="Validation error",
        code="validation_error",
        detail=ErrorDetail(errors=error_items)
    )

    return JSONResponse(
        status_code=400,
        content=json.loads(error_response.model_dump_json())
    )

@app.exception_handler(PipelineError)
async def pipeline_exception_handler(request: Request, exc: PipelineError):
    """Render pipeline errors with their status code and retry hint."""
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")

    error_response = ErrorResponse(
        status="error",
        message=exc.message,
        code=exc.code,
        retryable=exc.retryable,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=json.loads(error_response.model_dump_json(exclude_none=True))
    )

def run_server():
    """Console entry point."""
    parser = argparse.ArgumentParser(description="Run the Hotline Training Server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind the server to")
    parser.add_argument("--port", type=int, default=config.PORT,
                        help=f"Port to bind the server to (default: {config.PORT})")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)

if __name__ == "__main__":
    run_server()
