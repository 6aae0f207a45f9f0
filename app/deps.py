from typing import AsyncIterator

from fastapi import Depends, Request

from app.backend_client import BackendClient
from app.config import Settings
from app.services.profile import ProfileAggregator


def get_settings(request: Request) -> Settings:
  return request.app.state.settings


async def backend_client(request: Request) -> AsyncIterator[BackendClient]:
  """One backend client per request, closed when the request finishes."""
  async with BackendClient(
      request.app.state.settings,
      transport=getattr(request.app.state, "transport", None),
  ) as bc:
    yield bc


def profile_aggregator(client: BackendClient = Depends(backend_client)) -> ProfileAggregator:
  return ProfileAggregator(client)
