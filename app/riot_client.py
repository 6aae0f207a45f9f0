# app/riot_client.py
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from app.config import PLATFORM_TO_REGION, Settings
from app.errors import RiotKeyMissing
from app.util.retry import RetryPolicy, linear, retry_async

log = logging.getLogger("riot_client")


def _transient(r: httpx.Response) -> bool:
  return r.status_code in (429, 502, 503, 504)


class RiotClient:
  """
  Direct Riot API access for the legacy routes (X-Riot-Token auth).
  Everything else goes through BackendClient.
  """

  def __init__(self, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
    self.settings = settings
    self._transport = transport
    self._client: Optional[httpx.AsyncClient] = None
    self.policy = RetryPolicy(retries=2, backoff=linear(0.5), timeout=settings.data_timeout)

  async def __aenter__(self):
    if not self.settings.riot_api_key:
      raise RiotKeyMissing()
    limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
    # Small connect timeout; generous read timeout because match bodies are a bit larger
    self._client = httpx.AsyncClient(
        timeout=httpx.Timeout(15.0, connect=5.0),
        limits=limits,
        headers={"X-Riot-Token": self.settings.riot_api_key, "User-Agent": "rift-profile/1.0"},
        transport=self._transport,
    )
    return self

  async def __aexit__(self, *exc):
    if self._client:
      await self._client.aclose()

  @staticmethod
  def platform_host(platform: str) -> str:
    return f"https://{platform.lower()}.api.riotgames.com"

  @staticmethod
  def regional_host(platform: str) -> str:
    return f"https://{PLATFORM_TO_REGION.get(platform.lower(), 'americas')}.api.riotgames.com"

  async def _get(self, url: str, *, params: dict | None = None, name: str = "riot") -> httpx.Response:
    """GET with backoff for 429/5xx; the final response is returned whatever its status."""
    return await retry_async(
        lambda: self._client.get(url, params=params),
        self.policy,
        name=name,
        should_retry=_transient,
    )

  # --- Summoner (platform-scoped) ---
  async def summoner_by_name(self, platform: str, name: str) -> httpx.Response:
    url = f"{self.platform_host(platform)}/lol/summoner/v4/summoners/by-name/{quote(name, safe='')}"
    return await self._get(url, name="SummonerByName")

  async def summoner_by_puuid(self, platform: str, puuid: str) -> httpx.Response:
    url = f"{self.platform_host(platform)}/lol/summoner/v4/summoners/by-puuid/{puuid}"
    return await self._get(url, name="SummonerByPuuid")

  # --- Mastery & League (platform-scoped) ---
  async def champion_masteries(self, platform: str, puuid: str) -> httpx.Response:
    url = f"{self.platform_host(platform)}/lol/champion-mastery/v4/champion-masteries/by-puuid/{puuid}"
    return await self._get(url, name="ChampionMastery")

  async def ranked_entries(self, platform: str, summoner_id: str) -> httpx.Response:
    url = f"{self.platform_host(platform)}/lol/league/v4/entries/by-summoner/{summoner_id}"
    return await self._get(url, name="LeagueEntries")

  # -------- Match-v5 via REGIONAL --------
  async def match_ids(self, platform: str, puuid: str, count: int = 20) -> httpx.Response:
    url = f"{self.regional_host(platform)}/lol/match/v5/matches/by-puuid/{puuid}/ids"
    return await self._get(url, params={"count": count}, name="MatchIds")

  async def match(self, platform: str, match_id: str) -> Optional[dict]:
    url = f"{self.regional_host(platform)}/lol/match/v5/matches/{match_id}"
    try:
      r = await self._client.get(url)
    except httpx.HTTPError as e:
      log.error("Error fetching match %s: %s", match_id, e)
      return None
    return r.json() if r.is_success else None
