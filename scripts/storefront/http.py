import asyncio
import random
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from aiolimiter import AsyncLimiter

# statuses worth another try inside a single fetch; denial pages (403) are not
THROTTLED = frozenset({408, 425, 429, 500, 502, 503, 504})
TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.RemoteProtocolError, httpx.ReadError)
MAX_RETRY_AFTER = 30.0

BROWSER_UA = (
   "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
   "(KHTML, like Gecko) Chrome/120 Safari/537.36"
)

@asynccontextmanager
async def make_client(*, timeout: float = 30.0, http2: bool = True,
                      transport: httpx.AsyncBaseTransport | None = None):
   headers = {
      "User-Agent": BROWSER_UA,
      "Accept": "text/html,application/json;q=0.9,*/*;q=0.8",
      "Accept-Language": "en-US,en;q=0.9",
   }
   client = httpx.AsyncClient(http2=http2, timeout=timeout, transport=transport,
                              headers=headers, follow_redirects=True)
   async with client:
      yield client

def accept_language(locale: str) -> str:
   # "ru-ua" -> "ru-UA,ru;q=0.9"
   lang, _, country = locale.replace("_", "-").partition("-")
   if not country:
      return lang
   return f"{lang}-{country.upper()},{lang};q=0.9"

class DomainLimiter(AsyncLimiter):
   """Request budget for one host: *rps* acquisitions per second."""

   def __init__(self, rps: float):
      super().__init__(max(rps, 0.01), time_period=1)

   async def wait(self) -> None:
      await self.acquire()

def retry_delay(attempt: int, jitter: float, retry_after: Optional[str] = None) -> float:
   if retry_after:
      try:
         return min(MAX_RETRY_AFTER, float(retry_after))
      except ValueError:
         pass
   return min(8.0, 0.5 * 2 ** (attempt - 1) + random.random() * jitter)

async def fetch(client: httpx.AsyncClient, method: str, url: str, *,
                params=None, headers=None, json=None,
                limiter: DomainLimiter | None = None,
                max_retries: int = 3,
                raise_status: bool = True) -> httpx.Response:
   """
   Issue one request, retrying transport hiccups and throttling statuses.

   With raise_status=False an error status is handed back untouched so the
   caller can inspect the body of a denial page.
   """
   for attempt in range(1, max_retries + 2):
      last = attempt > max_retries
      if limiter is not None:
         await limiter.wait()
      try:
         r = await client.request(method, url, params=params, headers=headers, json=json,
                                  follow_redirects=True)
      except TRANSIENT_ERRORS:
         if last:
            raise
         await asyncio.sleep(retry_delay(attempt, 0.2))
         continue
      if r.status_code in THROTTLED and not last:
         await asyncio.sleep(retry_delay(attempt, 0.3, r.headers.get("Retry-After")))
         continue
      if raise_status:
         r.raise_for_status()
      return r
   raise AssertionError("unreachable")
