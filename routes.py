import logging
import os
import platform
from pathlib import Path
from urllib.parse import unquote

import fastapi
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.routing import APIRoute
from fastapi.templating import Jinja2Templates
from starlette.routing import Match

from config import Settings
from store import HOMEPAGE, Store, StoreError

logger = logging.getLogger(__name__)

router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


class RawPathRoute(APIRoute):
    """Matches the path as the client sent it, so an encoded ``/`` stays
    inside its segment. Path parameters are percent-decoded once afterwards.
    """

    def matches(self, scope):
        raw_path = scope.get("raw_path")
        if scope["type"] != "http" or raw_path is None:
            return super().matches(scope)
        raw = raw_path.decode("latin-1")
        # The router rewrites "path" when it looks for a trailing-slash redirect
        if unquote(raw) != scope["path"]:
            return super().matches(scope)
        match, child_scope = super().matches(dict(scope, path=raw))
        if match != Match.NONE:
            child_scope["path_params"] = {
                key: unquote(value) for key, value in child_scope["path_params"].items()
            }
        return match, child_scope


# Dependencies: the store and settings are attached to the app by its lifespan
def get_store(request: Request) -> Store:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/", response_class=HTMLResponse)
def home(
    request: Request,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    # A broken counter never breaks the page
    try:
        count = store.increment_and_get(HOMEPAGE)
    except StoreError as e:
        logger.warning("Could not update the view counter: %s", e.detail)
        count = 0

    return templates.TemplateResponse(request, "index.html", {
        "count": count,
        "service_name": settings.service_name,
        "service_label": settings.service_label,
        "db_info": store.backend_version,
        "framework_info": f"FastAPI {fastapi.__version__}",
        "server_info": os.getenv("SERVER_SOFTWARE", "Uvicorn"),
        "os_info": platform.system(),
        "port_info": settings.port,
    })


@router.get("/api/hello")
def hello(settings: Settings = Depends(get_app_settings)):
    return {"message": f"Hello from {settings.service_label}!"}


def greet(name: str):
    logger.debug("Greeting %r", name)
    return {"message": f"Hello, {name}!"}


router.add_api_route(
    "/api/greet/{name}", greet, methods=["GET"], route_class_override=RawPathRoute,
)


@router.post("/api/echo")
async def echo(request: Request):
    """Send the request body back untouched; it is never parsed."""
    body = await request.body()
    logger.debug("Echoing %d bytes", len(body))
    return Response(content=body, media_type="application/json")


@router.get("/health")
def health(settings: Settings = Depends(get_app_settings)):
    return {"status": "healthy", "service": settings.service_name}
