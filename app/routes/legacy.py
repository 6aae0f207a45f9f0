# app/routes/legacy.py
# Direct-to-Riot routes kept for older dashboard pages. They use the Riot API key
# instead of the backend service, and answer errors as {"error": ...}.
import asyncio
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from app.config import PLATFORMS
from app.riot_client import RiotClient

log = logging.getLogger("legacy")

router = APIRouter(prefix="/api", tags=["legacy"])


def _bad_request(msg: str) -> JSONResponse:
  return JSONResponse({"error": msg}, status_code=400)


def _validate(value: Optional[str], what: str, region: str) -> Optional[JSONResponse]:
  if not value:
    return _bad_request(f"{what} is required")
  if region not in PLATFORMS:
    return _bad_request(f"Invalid region. Must be one of: {', '.join(PLATFORMS)}")
  return None


def _riot_error(r: httpx.Response, not_found: str) -> JSONResponse:
  log.error("Riot API error %d: %s", r.status_code, r.text[:200])
  if r.status_code == 404:
    return JSONResponse({"error": not_found}, status_code=404)
  if r.status_code == 403:
    return JSONResponse({"error": "API key authentication failed. Please check your API key."}, status_code=403)
  return JSONResponse({"error": f"Riot API error: {r.status_code} {r.reason_phrase}"}, status_code=r.status_code)


def _open(request: Request) -> RiotClient:
  # opened inside the handler so input validation (400) wins over a missing key (500)
  return RiotClient(
      request.app.state.settings,
      transport=getattr(request.app.state, "riot_transport", None),
  )


@router.get("/summoner")
async def summoner_by_name(request: Request, name: Optional[str] = None, region: str = "na1"):
  if (bad := _validate(name, "Summoner name", region)):
    return bad
  async with _open(request) as rc:
    log.info("Fetching summoner: %s in region: %s", name, region)
    r = await rc.summoner_by_name(region, name)
    if not r.is_success:
      return _riot_error(r, f"Summoner '{name}' not found in {region.upper()}")
    data = r.json()
    log.info("Fetched summoner %s (Level %s)", data.get("name"), data.get("summonerLevel"))
    return data


@router.get("/summoner/by-puuid")
async def summoner_by_puuid(request: Request, puuid: Optional[str] = None, region: str = "br1"):
  if (bad := _validate(puuid, "PUUID", region)):
    return bad
  async with _open(request) as rc:
    log.info("Fetching summoner by PUUID: %s... in region: %s", puuid[:20], region)
    r = await rc.summoner_by_puuid(region, puuid)
    if not r.is_success:
      return _riot_error(r, f"Summoner with PUUID not found in {region.upper()}")
    return r.json()


@router.get("/champion-mastery")
async def champion_mastery(request: Request, puuid: Optional[str] = None, region: str = "br1"):
  if (bad := _validate(puuid, "PUUID", region)):
    return bad
  async with _open(request) as rc:
    r = await rc.champion_masteries(region, puuid)
    if not r.is_success:
      return _riot_error(r, f"No champion mastery found for PUUID in {region.upper()}")
    data = r.json()
    log.info("Fetched %d champion masteries", len(data))
    return data


@router.get("/league")
async def league(request: Request, summonerId: Optional[str] = None, region: str = "br1"):
  if (bad := _validate(summonerId, "Summoner ID", region)):
    return bad
  async with _open(request) as rc:
    r = await rc.ranked_entries(region, summonerId)
    if not r.is_success:
      return _riot_error(r, f"No league data found for summoner in {region.upper()}")
    entries = r.json() or []
    return {
      "soloQueue": next((e for e in entries if e.get("queueType") == "RANKED_SOLO_5x5"), None),
      "flexQueue": next((e for e in entries if e.get("queueType") == "RANKED_FLEX_SR"), None),
      "all": entries,
    }


@router.get("/matches")
async def matches(
    request: Request,
    puuid: Optional[str] = None,
    region: str = "br1",
    count: int = Query(20, ge=1, le=100),
):
  if (bad := _validate(puuid, "PUUID", region)):
    return bad
  async with _open(request) as rc:
    r = await rc.match_ids(region, puuid, count)
    if not r.is_success:
      log.error("Error fetching match IDs: %s", r.text[:200])
      return JSONResponse({"error": f"Failed to fetch match IDs: {r.status_code}"}, status_code=r.status_code)
    match_ids = r.json()
    # details only for the 10 most recent
    details = await asyncio.gather(*[rc.match(region, mid) for mid in match_ids[:10]])
    valid = [m for m in details if m is not None]
    log.info("Fetched %d match details", len(valid))
    return {
      "matchIds": match_ids,
      "matches": valid,
      "totalMatches": len(match_ids),
      "fetchedMatches": len(valid),
    }
