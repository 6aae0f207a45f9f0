# app/routes/ai.py
# Thin proxies for the model-backed endpoints on the backend. Nothing here calls a model directly.
import asyncio
import logging
import time
from contextlib import AsyncExitStack
from typing import Any, Dict

import httpx
from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.backend_client import BackendClient
from app.config import Settings
from app.deps import backend_client, get_settings
from app.errors import error_body, message_from
from app.models import decode_insights

log = logging.getLogger("ai")

router = APIRouter(prefix="/api/ai", tags=["ai"])

NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate"}
SSE_HEADERS = {
  "Cache-Control": "no-cache",
  "Connection": "keep-alive",
  "X-Accel-Buffering": "no",
}

_TIMEOUTS = (asyncio.TimeoutError, httpx.TimeoutException)


def _safe_json(r: httpx.Response) -> Any:
  try:
    return r.json()
  except ValueError:
    return {"error": "Unknown error"}


def _upstream_failure(r: httpx.Response, action: str) -> JSONResponse:
  payload = _safe_json(r)
  log.error("%s error: %d %s", action, r.status_code, payload)
  return JSONResponse({"error": message_from(payload, f"{action}: {r.status_code}")}, status_code=r.status_code)


def _failure(exc: Exception, settings: Settings, fallback: str) -> JSONResponse:
  log.error("%s: %s: %s", fallback, type(exc).__name__, exc)
  return JSONResponse(error_body(exc, settings.is_development, key="error", fallback=fallback), status_code=500)


async def _forward(bc: BackendClient, path: str, body: Dict[str, Any], action: str,
                   settings: Settings):
  t0 = time.monotonic()
  try:
    r = await bc.post_ai(path, body)
  except Exception as e:
    return _failure(e, settings, f"Failed to {action.lower()}")
  log.info("%s response: %d (%dms)", path, r.status_code, int((time.monotonic() - t0) * 1000))
  if not r.is_success:
    return _upstream_failure(r, f"Failed to {action.lower()}")
  return r.json()


@router.post("/analyze")
async def analyze(
    payload: Dict[str, Any] = Body(...),
    bc: BackendClient = Depends(backend_client),
    settings: Settings = Depends(get_settings),
):
  log.info("AI analyze request: playerData=%s matchData=%s type=%s",
           bool(payload.get("playerData")), bool(payload.get("matchData")), payload.get("analysisType"))
  return await _forward(bc, "/api/ai/analyze", payload, "Analyze", settings)


@router.post("/year-end-summary")
async def year_end_summary(
    payload: Dict[str, Any] = Body(...),
    bc: BackendClient = Depends(backend_client),
    settings: Settings = Depends(get_settings),
):
  return await _forward(bc, "/api/ai/year-end-summary", payload, "Generate summary", settings)


@router.post("/chat")
async def chat(request: Request, payload: Dict[str, Any] = Body(...), settings: Settings = Depends(get_settings)):
  """
  Forces stream=true upstream. An event-stream reply is relayed chunk by chunk,
  a JSON reply is returned as-is.
  """
  body = {**payload, "stream": True}
  stack = AsyncExitStack()
  bc = await stack.enter_async_context(
      BackendClient(settings, transport=getattr(request.app.state, "transport", None))
  )
  try:
    r = await bc.open_stream("/api/ai/chat", body)
  except Exception as e:
    await stack.aclose()
    return _failure(e, settings, "Failed to process AI chat")
  stack.push_async_callback(r.aclose)

  ctype = r.headers.get("content-type", "")
  log.info("AI chat response: %d content-type=%s", r.status_code, ctype)

  if not r.is_success or "text/event-stream" not in ctype:
    async with stack:
      await r.aread()
      if not r.is_success:
        return _upstream_failure(r, "Failed to process question")
      return r.json()

  async def relay():
    async with stack:
      try:
        async for chunk in r.aiter_raw():
          yield chunk
      except httpx.HTTPError as e:
        log.error("Stream error: %s", e)
        raise

  # also closes the stack when relay() never starts (client gone before the first chunk)
  return StreamingResponse(
      relay(), media_type="text/event-stream", headers=SSE_HEADERS, background=BackgroundTask(stack.aclose),
  )


@router.post("/dashboard-insights")
async def dashboard_insights(
    payload: Dict[str, Any] = Body(...),
    bc: BackendClient = Depends(backend_client),
    settings: Settings = Depends(get_settings),
):
  log.info("AI dashboard insights request: playerData=%s", bool(payload.get("playerData")))
  try:
    r = await bc.post_ai("/api/ai/dashboard-insights", payload)
  except _TIMEOUTS as e:
    log.error("Dashboard insights timed out: %s", e)
    body = {"error": "Request timeout: the request exceeded the maximum timeout duration.", "isTimeout": True}
    return JSONResponse(body, status_code=504, headers=NO_STORE)
  except httpx.TransportError as e:
    body = error_body(e, settings.is_development, key="error")
    body["error"] = f"Network error: {e}. Please check if the backend is accessible at {settings.backend_url}"
    body["isTimeout"] = False
    return JSONResponse(body, status_code=500, headers=NO_STORE)

  if not r.is_success:
    return _upstream_failure(r, "Failed to fetch dashboard insights")

  data = r.json()
  decoded = decode_insights(data)
  if decoded is data:
    log.info("Received legacy text insights response")
  else:
    log.info("Received structured insights: %d cards", len(decoded["insights"]))
  return JSONResponse(decoded, headers=NO_STORE)


@router.post("/dashboard-insights/start")
async def dashboard_insights_start(
    payload: Dict[str, Any] = Body(...),
    bc: BackendClient = Depends(backend_client),
    settings: Settings = Depends(get_settings),
):
  """Starts an async job upstream; returns its id immediately."""
  return await _forward(bc, "/api/ai/dashboard-insights/start", payload, "Start job", settings)


@router.get("/dashboard-insights/result/{jobId}")
async def dashboard_insights_result(
    jobId: str,
    bc: BackendClient = Depends(backend_client),
    settings: Settings = Depends(get_settings),
):
  try:
    r = await bc.get_ai(f"/api/ai/dashboard-insights/result/{jobId}")
  except Exception as e:
    return _failure(e, settings, "Failed to get job result")
  if not r.is_success:
    return _upstream_failure(r, "Failed to get job result")
  return r.json()
