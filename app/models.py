from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Any, Dict, List, Literal, Optional

CHART_TYPES = ("line", "bar", "pie", "radar", "progress", "heatmap")


class Account(BaseModel):
  model_config = ConfigDict(extra="allow")

  puuid: str
  gameName: str = ""
  tagLine: str = ""


class ProfileEnvelope(BaseModel):
  account: Account
  summoner: Optional[Dict[str, Any]] = None
  matches: List[Dict[str, Any]] = []
  championMastery: List[Dict[str, Any]] = []
  leagueEntries: List[Dict[str, Any]] = []
  challenges: Optional[Dict[str, Any]] = None
  clash: Optional[Any] = None
  region: str


class MatchPage(BaseModel):
  matches: List[Dict[str, Any]] = []
  hasMore: bool = False
  totalFetched: int = 0
  totalAvailable: Optional[int] = None


class ErrorBody(BaseModel):
  message: str
  details: Optional[Dict[str, Any]] = None


# ----------------------------
# AI dashboard insights
# ----------------------------
class VisualData(BaseModel):
  model_config = ConfigDict(extra="allow")

  chartType: Literal["line", "bar", "pie", "radar", "progress", "heatmap"] = "bar"
  data: List[Any] = []
  labels: Optional[List[Any]] = None
  colors: Optional[List[Any]] = None
  options: Optional[Dict[str, Any]] = None

  @field_validator("chartType", mode="before")
  @classmethod
  def _known_chart(cls, v):
    return v if v in CHART_TYPES else "bar"

  @field_validator("data", mode="before")
  @classmethod
  def _data_list(cls, v):
    return v if isinstance(v, list) else []


class InsightCard(BaseModel):
  type: str = "unknown"
  title: str = "Insight"
  textInsights: str = ""
  visualData: VisualData = Field(default_factory=VisualData)
  available: bool = True

  @field_validator("type", "title", "textInsights", mode="before")
  @classmethod
  def _falsy_to_default(cls, v, info):
    if v:
      return str(v)
    return cls.model_fields[info.field_name].default

  @field_validator("visualData", mode="before")
  @classmethod
  def _visual(cls, v):
    return v if isinstance(v, dict) and v else {"chartType": "bar", "data": []}

  @field_validator("available", mode="before")
  @classmethod
  def _available(cls, v):
    # only an explicit false hides a card
    return v is not False


class DashboardInsights(BaseModel):
  # analysisType / matchesAnalyzed / model / prompt ride along as extras
  model_config = ConfigDict(extra="allow")

  insights: List[InsightCard]


def decode_insights(payload: Any) -> Any:
  """
  Structured payloads ({"insights": [...]}) are decoded card by card with defaults;
  entries that are not objects (or fail validation) are dropped.
  Anything else (the legacy text format) is passed through untouched.
  """
  if not isinstance(payload, dict) or not isinstance(payload.get("insights"), list):
    return payload
  cards: List[InsightCard] = []
  for raw in payload["insights"]:
    if not isinstance(raw, dict):
      continue
    try:
      cards.append(InsightCard.model_validate(raw))
    except ValidationError:
      continue
  extras = {k: v for k, v in payload.items() if k != "insights"}
  return DashboardInsights(insights=cards, **extras).model_dump()
