import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

#routing region -> default platform for platform-scoped lookups
REGION_TO_PLATFORM = {
  "americas": "na1",
  "asia":     "kr",
  "europe":   "euw1",
}
DEFAULT_REGION = "americas"
DEFAULT_PLATFORM = "na1"

PLATFORM_TO_REGION = {
  # Americas cluster
  "na1": "americas", "br1": "americas", "la1": "americas", "la2": "americas",
  # Europe
  "euw1": "europe", "eun1": "europe", "tr1": "europe", "ru": "europe",
  # Asia (oc1 + SEA are routed through asia for match-v5 on the backend)
  "kr": "asia", "jp1": "asia", "oc1": "asia",
  "ph2": "asia", "sg2": "asia", "th2": "asia", "tw2": "asia", "vn2": "asia",
}

PLATFORMS = [
  "na1", "euw1", "eun1", "kr", "br1", "la1", "la2", "oc1",
  "tr1", "ru", "jp1", "ph2", "sg2", "th2", "tw2", "vn2",
]

#upstream call policy
DATA_TIMEOUT = 30.0
AI_TIMEOUT = 60.0
RETRIES = 2
BACKOFF_STEP = 1.0

#match detail batching
MATCH_BATCH_SIZE = 5
BATCH_DELAY = 0.1

#full profile sizes
PROFILE_MATCH_IDS = 30
PROFILE_MATCH_DETAILS = 25


def _env(*names: str) -> Optional[str]:
  for n in names:
    v = (os.getenv(n) or "").strip()
    if v:
      return v
  return None


def platform_for(region: Optional[str]) -> str:
  """Routing region -> platform; unknown regions fall back to na1."""
  return REGION_TO_PLATFORM.get((region or "").lower(), DEFAULT_PLATFORM)


def routing_region_for(region_or_platform: Optional[str]) -> str:
  """Accepts either a platform code (euw1) or a routing region (europe)."""
  r = (region_or_platform or DEFAULT_REGION).lower()
  return PLATFORM_TO_REGION.get(r, r)


@dataclass(frozen=True)
class Settings:
  backend_url: Optional[str] = None
  riot_api_key: Optional[str] = None
  riot_client_id: Optional[str] = None
  app_env: str = "production"
  log_level: str = "INFO"
  data_timeout: float = DATA_TIMEOUT
  ai_timeout: float = AI_TIMEOUT
  retries: int = RETRIES
  backoff_step: float = BACKOFF_STEP
  batch_size: int = MATCH_BATCH_SIZE
  batch_delay: float = BATCH_DELAY

  @property
  def is_development(self) -> bool:
    return self.app_env.lower() == "development"


def load_settings() -> Settings:
  backend = _env("BACKEND_URL", "NEXT_PUBLIC_BACKEND_URL")
  return Settings(
      backend_url=backend.rstrip("/") if backend else None,
      riot_api_key=_env("RIOT_API_KEY", "NEXT_PUBLIC_RIOT_API_KEY"),
      riot_client_id=_env("RIOT_CLIENT_ID", "NEXT_PUBLIC_RIOT_CLIENT_ID"),
      app_env=_env("APP_ENV", "NODE_ENV") or "production",
      log_level=_env("LOG_LEVEL") or "INFO",
  )
