import asyncio
from typing import Any, Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from app.backend_client import BackendClient
from app.config import Settings
from app.main import create_app

BACKEND = "http://backend.test"
PUUID = "puuid-abc"
ACCOUNT_PATH = "/api/riot/account/v1/accounts/by-riot-id/Faker/KR1"


class FakeUpstream:
  """
  Scripted upstream for httpx.MockTransport.
  Each path holds a queue of replies; the last reply repeats once the queue drains.
  A reply is an httpx.Response, an exception instance (raised), or a callable(request).
  Unknown paths answer 404.
  """

  def __init__(self):
    self.routes: Dict[str, List[Any]] = {}
    self.requests: List[httpx.Request] = []

  def on(self, path: str, *replies: Any) -> "FakeUpstream":
    self.routes[path] = list(replies)
    return self

  def json(self, path: str, payload: Any, status: int = 200) -> "FakeUpstream":
    return self.on(path, httpx.Response(status, json=payload))

  def calls(self, path: str) -> List[httpx.Request]:
    return [r for r in self.requests if r.url.path == path]

  def called(self, prefix: str) -> bool:
    return any(r.url.path.startswith(prefix) for r in self.requests)

  def __call__(self, request: httpx.Request) -> httpx.Response:
    self.requests.append(request)
    queue = self.routes.get(request.url.path)
    if not queue:
      return httpx.Response(404, json={"message": "not found"})
    reply = queue.pop(0) if len(queue) > 1 else queue[0]
    if isinstance(reply, BaseException):
      raise reply
    if callable(reply):
      return reply(request)
    return reply

  def transport(self) -> httpx.MockTransport:
    return httpx.MockTransport(self)


def match_ids_reply(ids: List[str]) -> Callable[[httpx.Request], httpx.Response]:
  """Like the real endpoint: honours ?count=N."""
  def reply(request: httpx.Request) -> httpx.Response:
    n = int(request.url.params.get("count", "20"))
    return httpx.Response(200, json=ids[:n])
  return reply


def match_detail(mid: str) -> dict:
  return {"metadata": {"matchId": mid}, "info": {"gameMode": "CLASSIC"}}


def seed_matches(up: FakeUpstream, ids: List[str], failing=()) -> None:
  up.on(f"/api/match/v5/matches/by-puuid/{PUUID}/ids", match_ids_reply(ids))
  for mid in ids:
    if mid in failing:
      up.on(f"/api/match/v5/matches/{mid}", httpx.Response(500, json={"error": "boom"}))
    else:
      up.json(f"/api/match/v5/matches/{mid}", match_detail(mid))


def seed_account(up: FakeUpstream) -> None:
  up.json(ACCOUNT_PATH, {"puuid": PUUID, "gameName": "Faker", "tagLine": "KR1"})


def make_settings(**kw) -> Settings:
  base = dict(backend_url=BACKEND, backoff_step=0.0, batch_delay=0.0)
  base.update(kw)
  return Settings(**base)


class SleepRecorder:
  def __init__(self):
    self.delays: List[float] = []

  async def __call__(self, delay: float) -> None:
    self.delays.append(delay)


@pytest.fixture
def upstream() -> FakeUpstream:
  return FakeUpstream()


@pytest.fixture
def sleeps() -> SleepRecorder:
  return SleepRecorder()


@pytest.fixture
def run_with_client(upstream, sleeps):
  """run_with_client(fn, **settings) -> fn(BackendClient) result, on a fresh event loop."""
  def _run(fn, **kw):
    async def main():
      settings = make_settings(**{"backoff_step": 1.0, "batch_delay": 0.1, **kw})
      async with BackendClient(settings, transport=upstream.transport(), sleep=sleeps) as bc:
        return await fn(bc)
    return asyncio.run(main())
  return _run


@pytest.fixture
def make_client(upstream):
  def _make(**kw) -> TestClient:
    app = create_app(make_settings(**kw), transport=upstream.transport(), riot_transport=upstream.transport())
    return TestClient(app, raise_server_exceptions=False)
  return _make


@pytest.fixture
def client(make_client) -> TestClient:
  return make_client()
