"""Aplicación FastAPI: página de estado y health."""

from __future__ import annotations

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse

from . import __version__
from .core.context import GatewayContext
from .page import render_home_page

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    """Página de inicio con estadísticas de mensajes."""
    ctx: GatewayContext = request.app.state.context
    return render_home_page(ctx.stats.to_dict(), client_id=ctx.client_id)


@router.get("/health", tags=["health"])
def health(request: Request):
    """Liveness: ok mientras el proceso no esté parando."""
    ctx: GatewayContext = request.app.state.context
    return {
        "status": "stopping" if ctx.shutting_down else "ok",
        "client_id": ctx.client_id,
        "stats": ctx.stats.to_dict(),
    }


def create_app(context: GatewayContext) -> FastAPI:
    app = FastAPI(title="AFM Gateway", version=__version__)
    app.state.context = context
    app.include_router(router)
    return app
