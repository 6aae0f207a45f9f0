# app/errors.py
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = logging.getLogger("errors")


class UpstreamError(Exception):
  """A non-success backend reply that is surfaced to the caller as-is."""

  def __init__(self, status_code: int, message: str, key: str = "message"):
    super().__init__(message)
    self.status_code = status_code
    self.message = message
    self.key = key


class BackendNotConfigured(RuntimeError):
  def __init__(self):
    super().__init__(
        "Backend URL is not configured. Please set BACKEND_URL or NEXT_PUBLIC_BACKEND_URL."
    )


class RiotKeyMissing(RuntimeError):
  def __init__(self):
    super().__init__("Riot API key not configured")


def error_details(exc: BaseException) -> Dict[str, Any]:
  stack = traceback.format_exception(type(exc), exc, exc.__traceback__)
  return {
    "name": type(exc).__name__,
    "message": str(exc),
    "stack": "".join(stack[-3:]).strip(),
  }


def error_body(exc: BaseException, development: bool, key: str = "message",
               fallback: str = "Internal server error") -> Dict[str, Any]:
  body: Dict[str, Any] = {key: str(exc) or fallback}
  if development:
    body["details"] = error_details(exc)
  return body


def _development(request: Request) -> bool:
  settings = getattr(request.app.state, "settings", None)
  return bool(settings and settings.is_development)


def install_error_handlers(app: FastAPI) -> None:

  @app.exception_handler(UpstreamError)
  async def _upstream(request: Request, exc: UpstreamError):
    log.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse({exc.key: exc.message}, status_code=exc.status_code)

  @app.exception_handler(BackendNotConfigured)
  async def _no_backend(request: Request, exc: BackendNotConfigured):
    log.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"message": str(exc), "error": str(exc)}, status_code=500)

  @app.exception_handler(RiotKeyMissing)
  async def _no_key(request: Request, exc: RiotKeyMissing):
    log.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=500)

  @app.exception_handler(Exception)
  async def _unexpected(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(error_body(exc, _development(request)), status_code=500)


def message_from(payload: Optional[Any], fallback: str) -> str:
  if isinstance(payload, dict):
    for k in ("error", "message"):
      if payload.get(k):
        return str(payload[k])
  return fallback
