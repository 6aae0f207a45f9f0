# app/util/retry.py
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar

log = logging.getLogger("retry")

T = TypeVar("T")


def linear(step: float) -> Callable[[int], float]:
  """attempt 1 -> step, attempt 2 -> 2*step, ..."""
  return lambda attempt: step * attempt


@dataclass(frozen=True)
class RetryPolicy:
  retries: int = 2
  backoff: Callable[[int], float] = field(default_factory=lambda: linear(1.0))
  timeout: Optional[float] = 30.0
  sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

  @property
  def attempts(self) -> int:
    return self.retries + 1


async def retry_async(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    name: str = "upstream",
    should_retry: Optional[Callable[[T], bool]] = None,
) -> T:
  """
  Run `call` up to policy.attempts times.
    - each attempt is bounded by policy.timeout (asyncio.wait_for cancels it),
    - exceptions (timeouts included) are retried,
    - a result flagged by `should_retry` is retried too,
    - waits policy.backoff(n) between attempt n and n+1.
  After the last attempt the exception is re-raised, or the last result returned.
  """
  last: Any = None
  for attempt in range(1, policy.attempts + 1):
    t0 = time.monotonic()
    try:
      if policy.timeout is not None:
        result = await asyncio.wait_for(call(), timeout=policy.timeout)
      else:
        result = await call()
    except asyncio.CancelledError:
      raise
    except Exception as e:
      ms = int((time.monotonic() - t0) * 1000)
      log.warning("%s error (attempt %d/%d, %dms): %s: %s",
                  name, attempt, policy.attempts, ms, type(e).__name__, e)
      if attempt == policy.attempts:
        log.error("%s failed after all retries", name)
        raise
    else:
      ms = int((time.monotonic() - t0) * 1000)
      if should_retry is None or not should_retry(result):
        log.info("%s ok (attempt %d/%d, %dms)", name, attempt, policy.attempts, ms)
        return result
      log.warning("%s unsuccessful reply (attempt %d/%d, %dms)", name, attempt, policy.attempts, ms)
      last = result
      if attempt == policy.attempts:
        return last

    delay = policy.backoff(attempt)
    log.info("%s retrying in %dms...", name, int(delay * 1000))
    await policy.sleep(delay)

  return last


async def gather_settled(aws: Iterable[Awaitable[Optional[T]]], *, name: str = "batch") -> List[T]:
  """
  Await everything regardless of individual outcome.
  Results keep input order; exceptions and None results are dropped.
  """
  results = await asyncio.gather(*aws, return_exceptions=True)
  out: List[T] = []
  for i, r in enumerate(results):
    if isinstance(r, BaseException):
      log.error("%s[%d] failed: %s: %s", name, i, type(r).__name__, r)
      continue
    if r is None:
      continue
    out.append(r)
  return out


def batched(items: Sequence[T], size: int) -> List[Sequence[T]]:
  if size <= 0:
    raise ValueError("batch size must be positive")
  return [items[i:i + size] for i in range(0, len(items), size)]
