"""
MODULE OVERVIEW:
The FastAPI application factory.

WHAT IS HAPPENING HERE:
We use a `lifespan` context manager. When Uvicorn starts the server we create
the `users` table if needed and attach per-app state (the example GET counter).
There are no background tasks to cancel on shutdown: every timer stream owns
its own task and tears it down when its connection ends.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger

from userstream.server import database
from userstream.server.middleware import TimingMiddleware
from userstream.server.routes import example_api, stream, users
from userstream.server.templating import templates
from userstream.shared.route_utils import UserActionError


@asynccontextmanager
async def lifespan(app: FastAPI):
    # STARTUP
    logger.info("userstream server starting up...")
    database.init_db()
    app.state.request_counter = example_api.RequestCounter()

    yield

    # SHUTDOWN
    logger.info("Shutdown complete.")


async def user_action_error_handler(request: Request, exc: UserActionError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": exc.message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="userstream",
        description="User management pages plus a server-sent-events timer demo",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(UserActionError, user_action_error_handler)

    app.include_router(users.router, tags=["Users"])
    app.include_router(users.api_router, tags=["Users API"])
    app.include_router(example_api.router, tags=["Example API"])
    app.include_router(stream.router, tags=["Stream"])

    @app.get("/", response_class=HTMLResponse, tags=["Pages"])
    async def home(request: Request):
        return templates.TemplateResponse(request, "home.html", {})

    @app.get("/healthz", tags=["Ops"])
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
