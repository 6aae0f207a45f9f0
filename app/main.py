import logging
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from app.config import Settings, load_settings
from app.errors import install_error_handlers
from app.routes.ai import router as ai_router
from app.routes.diagnostics import router as diagnostics_router
from app.routes.legacy import router as legacy_router
from app.routes.player import router as player_router
from app.util.log import configure_logging

log = logging.getLogger("main")


def create_app(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    riot_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
  """
  `transport` / `riot_transport` replace the network for the backend and Riot
  clients (tests pass httpx.MockTransport).
  """
  settings = settings or load_settings()
  configure_logging(settings.log_level)
  log.info("[Startup] BACKEND_URL: %s", settings.backend_url or "not set")
  log.info("[Startup] APP_ENV: %s", settings.app_env)

  app = FastAPI(title="Rift Profile")
  app.state.settings = settings
  app.state.transport = transport
  app.state.riot_transport = riot_transport
  install_error_handlers(app)

  #health check
  @app.get("/api/health", response_class=PlainTextResponse)
  async def health():
    return "ok"

  #register API routes
  app.include_router(player_router)
  app.include_router(ai_router)
  app.include_router(legacy_router)
  app.include_router(diagnostics_router)
  return app


app = create_app()
