"""
Escrow Workspace Portal - Backend API
FastAPI + JWT bearer auth + SQLAlchemy
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import os

from modules.workspace.config import get_config
from modules.workspace.database import init_db
from modules.workspace.errors import (
    Forbidden,
    ImmutableRecordError,
    NotFound,
    ProjectNotClosable,
    Unauthenticated,
    WorkspaceError,
)

from .db import get_db_engine
from .routers import admin, health, workspace

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    Unauthenticated: 401,
    Forbidden: 403,
    NotFound: 404,
    ProjectNotClosable: 409,
    ImmutableRecordError: 409,
}


# Create tables on startup
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(get_db_engine())
    yield
    get_db_engine().dispose()


app = FastAPI(
    title="Escrow Workspace API",
    description="Milestones, deliveries and timeline for client/talent projects",
    version="1.0.0",
    lifespan=lifespan
)

# CORS - allow frontend origins
origins = list(get_config().portal.cors_origins)
if os.getenv("FRONTEND_URL"):
    origins.append(os.environ["FRONTEND_URL"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkspaceError)
async def workspace_error_handler(request: Request, exc: WorkspaceError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 403:
        logger.info(f"{request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(workspace.router, prefix="/api/workspace", tags=["Workspace"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.get("/")
async def root():
    return {
        "name": "Escrow Workspace API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
