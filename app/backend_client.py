# app/backend_client.py
import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from app.config import Settings
from app.errors import BackendNotConfigured
from app.util.retry import RetryPolicy, linear, retry_async

log = logging.getLogger("backend_client")


def is_transient(r: httpx.Response) -> bool:
  # any non-2xx reply is worth another attempt; the last one is returned as is
  return not r.is_success


class BackendClient:
  """
  Async client for the backend service (which proxies the Riot API).
  One instance per incoming request; nothing is shared across requests.
  """

  def __init__(
      self,
      settings: Settings,
      *,
      transport: Optional[httpx.AsyncBaseTransport] = None,
      sleep=asyncio.sleep,
  ):
    self.settings = settings
    self._transport = transport
    self._client: Optional[httpx.AsyncClient] = None
    self.policy = RetryPolicy(
        retries=settings.retries,
        backoff=linear(settings.backoff_step),
        timeout=settings.data_timeout,
        sleep=sleep,
    )
    self.single = RetryPolicy(retries=0, timeout=settings.data_timeout, sleep=sleep)
    self.ai_policy = RetryPolicy(retries=0, timeout=settings.ai_timeout, sleep=sleep)

  @property
  def base_url(self) -> str:
    return self.settings.backend_url or ""

  async def __aenter__(self):
    if not self.settings.backend_url:
      raise BackendNotConfigured()
    limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
    # per-attempt deadlines come from RetryPolicy.timeout; this is the socket-level ceiling
    self._client = httpx.AsyncClient(
        base_url=self.settings.backend_url,
        headers={"Connection": "keep-alive"},
        timeout=httpx.Timeout(self.settings.ai_timeout, connect=10.0),
        limits=limits,
        transport=self._transport,
    )
    return self

  async def __aexit__(self, *exc):
    await self.aclose()

  async def aclose(self):
    if self._client:
      await self._client.aclose()
      self._client = None

  # ----------------------------
  # Core GET helpers
  # ----------------------------
  async def fetch(self, path: str, *, params: dict | None = None, name: str = "unknown",
                  retry: bool = True) -> httpx.Response:
    """GET with per-attempt timeout; retries exceptions and non-2xx replies."""
    log.info("%s: GET %s%s params=%s", name, self.base_url, path, params)
    return await retry_async(
        lambda: self._client.get(path, params=params),
        self.policy if retry else self.single,
        name=name,
        should_retry=is_transient,
    )

  async def fetch_json_or(self, path: str, default: Any = None, *, params: dict | None = None,
                          name: str = "unknown", retry: bool = True) -> Any:
    """Soft variant: any failure (status, timeout, bad body) degrades to `default`."""
    try:
      r = await self.fetch(path, params=params, name=name, retry=retry)
    except Exception as e:
      log.warning("%s unavailable: %s: %s", name, type(e).__name__, e)
      return default
    if not r.is_success:
      log.info("%s unavailable: %d %s", name, r.status_code, r.reason_phrase)
      return default
    try:
      return r.json()
    except ValueError as e:
      log.warning("%s returned invalid JSON: %s", name, e)
      return default

  # -------- Account via routing region --------
  async def account_by_riot_id(self, game_name: str, tag_line: str, region: str) -> httpx.Response:
    path = f"/api/riot/account/v1/accounts/by-riot-id/{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
    return await self.fetch(path, params={"region": region}, name="AccountByRiotId")

  # -------- Match-v5 via routing region --------
  async def match_ids(self, puuid: str, region: str, count: int) -> httpx.Response:
    path = f"/api/match/v5/matches/by-puuid/{puuid}/ids"
    return await self.fetch(path, params={"region": region, "count": count}, name="MatchIds")

  async def match(self, match_id: str, region: str) -> Optional[dict]:
    """Single attempt; None when the match could not be fetched."""
    return await self.fetch_json_or(
        f"/api/match/v5/matches/{match_id}", None,
        params={"region": region}, name=f"Match {match_id}", retry=False,
    )

  # --- Platform-scoped lookups ---
  async def summoner_by_puuid(self, puuid: str, platform: str) -> httpx.Response:
    path = f"/api/summoner/v4/summoners/by-puuid/{puuid}"
    return await self.fetch(path, params={"region": platform, "autoDetect": "true"}, name="Summoner")

  async def champion_masteries(self, puuid: str, platform: str) -> httpx.Response:
    path = f"/api/champion-mastery/v4/champion-masteries/by-puuid/{puuid}"
    return await self.fetch(path, params={"region": platform}, name="ChampionMastery")

  async def mastery_score(self, puuid: str, platform: str) -> httpx.Response:
    path = f"/api/champion-mastery/v4/scores/by-puuid/{puuid}"
    return await self.fetch(path, params={"region": platform}, name="ChampionMasteryScore")

  async def league_entries(self, puuid: str, platform: str) -> httpx.Response:
    path = f"/api/league/v4/entries/by-puuid/{puuid}"
    return await self.fetch(path, params={"region": platform}, name="LeagueEntries")

  async def challenges(self, puuid: str, platform: str) -> httpx.Response:
    path = f"/api/challenges/v1/player-data/by-puuid/{puuid}"
    return await self.fetch(path, params={"region": platform}, name="Challenges")

  async def clash_player(self, summoner_id: str, platform: str) -> httpx.Response:
    path = f"/api/clash/v1/players/by-summoner/{summoner_id}"
    return await self.fetch(path, params={"region": platform}, name="ClashPlayer")

  async def clash_tournaments(self, platform: str) -> httpx.Response:
    return await self.fetch("/api/clash/v1/tournaments", params={"region": platform}, name="ClashTournaments")

  async def active_game(self, summoner_id: str, platform: str) -> httpx.Response:
    path = f"/api/spectator/v5/active-games/by-summoner/{summoner_id}"
    return await self.fetch(path, params={"region": platform}, name="ActiveGame", retry=False)

  async def health(self, timeout: float = 10.0) -> httpx.Response:
    policy = RetryPolicy(retries=0, timeout=timeout, sleep=self.policy.sleep)
    return await retry_async(lambda: self._client.get("/health"), policy, name="Health")

  # -------- AI (model-backed, slow) --------
  async def post_ai(self, path: str, body: Any) -> httpx.Response:
    log.info("AI: POST %s%s", self.base_url, path)
    return await retry_async(
        lambda: self._client.post(path, content=json.dumps(body), headers={"Content-Type": "application/json"}),
        self.ai_policy,
        name=f"AI {path}",
    )

  async def get_ai(self, path: str) -> httpx.Response:
    return await retry_async(
        lambda: self._client.get(path, headers={"Content-Type": "application/json"}),
        self.ai_policy,
        name=f"AI {path}",
    )

  async def open_stream(self, path: str, body: Any) -> httpx.Response:
    """
    POST and return the response with its body still unread.
    Caller owns it and must `aclose()` the response (and this client) when done.
    """
    req = self._client.build_request(
        "POST", path, content=json.dumps(body),
        headers={"Content-Type": "application/json"},
        timeout=httpx.Timeout(self.settings.ai_timeout, connect=10.0),
    )
    return await asyncio.wait_for(self._client.send(req, stream=True), timeout=self.settings.ai_timeout)
