"""FastAPI application - tournament registration API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from tourney import errors
from tourney.messages import message
from tourney.models.base import async_session_factory, init_db
from tourney.services import stats
from web.api.auth_routes import router as auth_router
from web.api.routes import router as api_router
from web.api.users_routes import router as users_router
from web.api.utils import fail, ok
from web.auth import seed_initial_admin

logger = logging.getLogger("tourney.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    await seed_initial_admin()
    yield


app = FastAPI(title="Tournament Registration API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)
app.include_router(auth_router)
app.include_router(users_router)


@app.exception_handler(errors.TourneyError)
async def tourney_error_handler(request: Request, exc: errors.TourneyError):
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message, reason=exc.reason))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=fail(message("invalid data"), details=details))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(str(exc.detail), detail=exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=fail(message("server error")))


@app.get("/api/stats")
async def site_stats():
    """Public site counters."""
    async with async_session_factory() as session:
        return ok(await stats.site_stats(session))


@app.get("/api/health")
async def health():
    return {"success": True, "status": "ok"}
