# app/routes/player.py
from fastapi import APIRouter, Depends, Query

from app.backend_client import BackendClient
from app.config import DEFAULT_REGION, routing_region_for
from app.deps import backend_client, profile_aggregator
from app.errors import UpstreamError
from app.models import ErrorBody, MatchPage, ProfileEnvelope
from app.services.profile import ProfileAggregator

router = APIRouter(prefix="/api", tags=["player"])

_ERRORS = {404: {"model": ErrorBody}, 500: {"model": ErrorBody}}


@router.get("/player/{gameName}/{tagLine}", response_model=ProfileEnvelope, responses=_ERRORS)
async def player_profile(
    gameName: str,
    tagLine: str,
    region: str = DEFAULT_REGION,
    agg: ProfileAggregator = Depends(profile_aggregator),
):
  """
  Example:
    /api/player/MK1Paris/NA1?region=americas
  """
  return await agg.build_profile(gameName, tagLine, region)


@router.get(
    "/player/{gameName}/{tagLine}/matches",
    response_model=MatchPage,
    response_model_exclude_none=True,
    responses=_ERRORS,
)
async def player_matches(
    gameName: str,
    tagLine: str,
    region: str = DEFAULT_REGION,
    start: int = Query(0, ge=0),
    count: int = Query(10, ge=1, le=100),
    agg: ProfileAggregator = Depends(profile_aggregator),
):
  """
  Example:
    /api/player/MK1Paris/NA1/matches?region=na1&start=10&count=10
  `region` may be a platform (na1) or a routing region (americas).
  """
  return await agg.match_page(gameName, tagLine, routing_region_for(region), start, count)


@router.get("/challenges/{gameName}/{tagLine}", responses=_ERRORS)
async def player_challenges(
    gameName: str,
    tagLine: str,
    region: str = DEFAULT_REGION,
    agg: ProfileAggregator = Depends(profile_aggregator),
):
  return await agg.challenges_for(gameName, tagLine, region)


@router.get("/live-game/{gameName}/{tagLine}", responses=_ERRORS)
async def live_game(
    gameName: str,
    tagLine: str,
    region: str = DEFAULT_REGION,
    agg: ProfileAggregator = Depends(profile_aggregator),
):
  return await agg.live_game_for(gameName, tagLine, region)


@router.get("/champion-mastery/scores/by-puuid/{puuid}", responses=_ERRORS)
async def mastery_score(puuid: str, region: str = "na1", bc: BackendClient = Depends(backend_client)):
  r = await bc.mastery_score(puuid, region)
  if not r.is_success:
    raise UpstreamError(r.status_code, f"Failed to fetch mastery score: {r.reason_phrase}")
  return r.json()
