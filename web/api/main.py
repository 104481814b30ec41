"""FastAPI app for Campus Event Hub - JSON API plus public uploaded images."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError

import config
from hub.errors import AuthError, HubError
from hub.models.base import init_db
from hub.services.storage import PUBLIC_PREFIX

from web.api.routes import router as events_router
from web.api.auth_routes import router as auth_router
from web.api.user_routes import router as users_router
from web.api.team_routes import router as teams_router
from web.api.announcement_routes import router as announcements_router
from web.api.storage_routes import router as storage_router
from web.api.dashboard_routes import router as dashboard_router

logger = logging.getLogger("campushub.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(title="Campus Event Hub API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(events_router)
app.include_router(teams_router)
app.include_router(announcements_router)
app.include_router(storage_router)
app.include_router(dashboard_router)

config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(PUBLIC_PREFIX, StaticFiles(directory=str(config.UPLOAD_DIR)), name="uploads")


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # Storage-level uniqueness/reference backstop that no service check caught
    logger.warning("Constraint violated on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "constraint_violated"})


@app.get("/api/health")
async def health():
    return {"status": "ok"}
