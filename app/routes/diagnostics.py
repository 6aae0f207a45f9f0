# app/routes/diagnostics.py
import logging
import time
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.backend_client import BackendClient
from app.config import Settings
from app.deps import backend_client, get_settings
from app.errors import error_details

log = logging.getLogger("diagnostics")

router = APIRouter(prefix="/api", tags=["diagnostics"])


def _hint(exc: Exception) -> str:
  if isinstance(exc, httpx.ConnectError):
    return "Backend server is not running or not accessible. Check if the server is running on the specified URL."
  if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
    return "Backend server is not reachable. Check the backend URL and network connectivity."
  if isinstance(exc, httpx.RemoteProtocolError):
    return "Connection to backend was reset. The server may be overloaded or the connection was interrupted."
  return "Failed to connect to backend"


@router.get("/backend-test")
async def backend_test(bc: BackendClient = Depends(backend_client), settings: Settings = Depends(get_settings)):
  """Probe GET {backend}/health and report what came back."""
  url = f"{settings.backend_url}/health"
  now = datetime.now(timezone.utc).isoformat()
  t0 = time.monotonic()
  try:
    r = await bc.health()
  except Exception as e:
    ms = int((time.monotonic() - t0) * 1000)
    log.error("Health check failed after %dms: %s: %s", ms, type(e).__name__, e)
    body = {
      "success": False,
      "backendUrl": settings.backend_url,
      "error": _hint(e),
      "timestamp": now,
    }
    if settings.is_development:
      body["details"] = error_details(e)
    return JSONResponse(body, status_code=500)

  ms = int((time.monotonic() - t0) * 1000)
  if "application/json" in r.headers.get("content-type", ""):
    try:
      body = r.json()
    except ValueError:
      body = None
  else:
    body = r.text

  log.info("Health check: %d (%dms)", r.status_code, ms)
  return JSONResponse({
    "success": r.is_success,
    "backendUrl": settings.backend_url,
    "healthCheck": {
      "url": url,
      "status": r.status_code,
      "statusText": r.reason_phrase,
      "ok": r.is_success,
      "responseTime": f"{ms}ms",
      "responseBody": body,
    },
    "environment": {"appEnv": settings.app_env, "hasBackendUrl": bool(settings.backend_url)},
    "timestamp": now,
  }, status_code=200 if r.is_success else 500)
