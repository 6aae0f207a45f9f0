# app/services/profile.py
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from app.backend_client import BackendClient
from app.config import PROFILE_MATCH_DETAILS, PROFILE_MATCH_IDS, platform_for
from app.errors import UpstreamError
from app.util.retry import batched, gather_settled

log = logging.getLogger("profile")


def _json_or(r: httpx.Response, default: Any) -> Any:
  if not r.is_success:
    return default
  try:
    return r.json()
  except ValueError:
    return default


def _list_or_empty(v: Any) -> list:
  return v if isinstance(v, list) else []


class ProfileAggregator:
  """
  Builds one player profile out of many backend calls.

  Account resolution is the only hard dependency; every other lookup
  degrades to null / [] when it fails.
  """

  def __init__(self, client: BackendClient):
    self.client = client

  # ----------------------------
  # Hard dependency
  # ----------------------------
  async def resolve_account(self, game_name: str, tag_line: str, region: str) -> dict:
    r = await self.client.account_by_riot_id(game_name, tag_line, region)
    if not r.is_success:
      log.error("Account fetch failed: %d %s", r.status_code, r.reason_phrase)
      raise UpstreamError(r.status_code, f"Account not found: {r.reason_phrase}")
    account = r.json()
    log.info("Account resolved puuid=%s", account.get("puuid"))
    return account

  # ----------------------------
  # Soft lookups
  # ----------------------------
  async def _soft(self, call, default: Any, name: str) -> Any:
    try:
      r = await call
    except Exception as e:
      log.warning("%s unavailable after retries: %s: %s", name, type(e).__name__, e)
      return default
    data = _json_or(r, default)
    if data is default:
      log.info("%s unavailable: %d", name, r.status_code)
    return data

  async def fetch_match_details(self, match_ids: Sequence[str], region: str) -> List[dict]:
    """
    Batches of settings.batch_size, concurrent inside a batch, sequential across batches
    with settings.batch_delay in between. Failed matches are dropped; order is kept.
    """
    size = self.client.settings.batch_size
    delay = self.client.settings.batch_delay
    chunks = batched(list(match_ids), size)
    out: List[dict] = []
    for i, chunk in enumerate(chunks):
      got = await gather_settled(
          [self.client.match(mid, region) for mid in chunk],
          name=f"matches batch {i + 1}/{len(chunks)}",
      )
      out.extend(got)
      if i + 1 < len(chunks):
        await self.client.policy.sleep(delay)
    log.info("Fetched %d/%d match details", len(out), len(match_ids))
    return out

  async def fetch_clash(self, summoner: Optional[dict], platform: str) -> Optional[Any]:
    """Registration first; tournaments only when the player has one."""
    sid = (summoner or {}).get("id")
    if not isinstance(sid, str) or not sid:
      return None
    try:
      reg = await self.client.clash_player(sid, platform)
      if not reg.is_success:
        log.info("No clash registration: %d", reg.status_code)
        return None
      tournaments = await self.client.clash_tournaments(platform)
      if not tournaments.is_success:
        return None
      return tournaments.json()
    except Exception as e:
      log.warning("Clash data not available: %s: %s", type(e).__name__, e)
      return None

  # ----------------------------
  # Full profile
  # ----------------------------
  async def build_profile(self, game_name: str, tag_line: str, region: str) -> Dict[str, Any]:
    platform = platform_for(region)
    t0 = time.monotonic()
    log.info("Profile fetch started: %s#%s region=%s platform=%s", game_name, tag_line, region, platform)

    account = await self.resolve_account(game_name, tag_line, region)
    puuid = account["puuid"]
    c = self.client

    summoner, league, mastery, challenges, match_ids = await asyncio.gather(
        self._soft(c.summoner_by_puuid(puuid, platform), None, "Summoner"),
        self._soft(c.league_entries(puuid, platform), [], "LeagueEntries"),
        self._soft(c.champion_masteries(puuid, platform), [], "ChampionMastery"),
        self._soft(c.challenges(puuid, platform), None, "Challenges"),
        self._soft(c.match_ids(puuid, region, PROFILE_MATCH_IDS), [], "MatchIds"),
    )

    matches = await self.fetch_match_details(_list_or_empty(match_ids)[:PROFILE_MATCH_DETAILS], region)
    clash = await self.fetch_clash(summoner if isinstance(summoner, dict) else None, platform)

    log.info("Profile assembled in %dms (%d matches)", int((time.monotonic() - t0) * 1000), len(matches))
    return {
      "account": account,
      "summoner": summoner if isinstance(summoner, dict) else None,
      "matches": matches,
      "championMastery": _list_or_empty(mastery),
      "leagueEntries": _list_or_empty(league),
      "challenges": challenges if isinstance(challenges, dict) else None,
      "clash": clash,
      "region": platform,
    }

  # ----------------------------
  # Paginated match history
  # ----------------------------
  async def match_page(self, game_name: str, tag_line: str, region: str, start: int = 0,
                       count: int = 10) -> Dict[str, Any]:
    """
    Asks for start+count+1 ids; the extra one only tells us whether another page exists.
    Assumes the upstream id list does not shift between pages.
    """
    account = await self.resolve_account(game_name, tag_line, region)
    window = start + count
    all_ids = _list_or_empty(
        await self._soft(self.client.match_ids(account["puuid"], region, window + 1), [], "MatchIds")
    )
    has_more = len(all_ids) > window
    to_fetch = all_ids[start:window]

    if not to_fetch:
      return {"matches": [], "hasMore": False, "totalFetched": start}

    matches = await self.fetch_match_details(to_fetch, region)
    return {
      "matches": matches,
      "hasMore": has_more,
      "totalFetched": start + len(matches),
      "totalAvailable": len(all_ids),
    }

  # ----------------------------
  # Single-resource variants
  # ----------------------------
  async def challenges_for(self, game_name: str, tag_line: str, region: str) -> Any:
    platform = platform_for(region)
    account = await self.resolve_account(game_name, tag_line, region)
    r = await self.client.challenges(account["puuid"], platform)
    if not r.is_success:
      raise UpstreamError(r.status_code, f"Challenges not available: {r.reason_phrase}")
    return r.json()

  async def live_game_for(self, game_name: str, tag_line: str, region: str) -> Any:
    platform = platform_for(region)
    account = await self.resolve_account(game_name, tag_line, region)
    s = await self.client.summoner_by_puuid(account["puuid"], platform)
    if not s.is_success:
      raise UpstreamError(s.status_code, f"Summoner not found: {s.reason_phrase}")
    summoner = s.json()
    g = await self.client.active_game(summoner.get("id", ""), platform)
    if g.status_code == 404:
      raise UpstreamError(404, "Player is not currently in a live game")
    if not g.is_success:
      raise UpstreamError(g.status_code, f"Failed to fetch live game: {g.reason_phrase}")
    return g.json()
