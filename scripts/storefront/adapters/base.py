from __future__ import annotations
import abc, logging
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from storefront.http import DomainLimiter, fetch, make_client

@dataclass(slots=True)
class FetcherConfig:
   rps: float = 1.0              # requests per second for the store domain
   timeout: float = 90.0         # seconds, per fetch
   max_retries: int = 2          # transport-level retries inside one fetch

@dataclass(slots=True)
class FetchResult:
   status: int = 0
   content: str = ""
   error: Optional[str] = None
   url: str = ""
   cached: bool = False

class PageFetcher(abc.ABC):
   """
   Opaque page source: url in, status/content/error out.

   Usage:
      async with PSNFetcher() as f:
         page = await f.fetch_page(url)

   An injected client is used as is and never closed here.
   """
   store: str = "pages"

   def __init__(self, *, config: FetcherConfig | None = None,
                http: httpx.AsyncClient | None = None,
                limiter: DomainLimiter | None = None,
                logger: logging.Logger | None = None):
      self.config = config or FetcherConfig()
      self._http = http
      self._stack: AsyncExitStack | None = None
      self._limiter = limiter or DomainLimiter(self.config.rps)
      self.log = logger or logging.getLogger(f"storefront.{self.store}")
      self.metrics: Dict[str, int] = {"fetched": 0, "failed": 0, "cached": 0}

   async def __aenter__(self) -> "PageFetcher":
      if self._http is None:
         self._stack = AsyncExitStack()
         self._http = await self._stack.enter_async_context(make_client(timeout=self.config.timeout))
      return self

   async def __aexit__(self, exc_type, exc, tb):
      if self._stack is not None:
         stack, self._stack = self._stack, None
         self._http = None
         await stack.aclose()

   async def request(self, method: str, url: str, **kw) -> httpx.Response:
      if self._http is None:
         raise RuntimeError(f"{type(self).__name__} needs 'async with' or an injected client")
      kw.setdefault("max_retries", self.config.max_retries)
      response = await fetch(self._http, method, url, limiter=self._limiter, **kw)
      self.metrics["fetched"] += 1
      return response

   async def get_json(self, url: str, **kw) -> Any:
      return (await self.request("GET", url, **kw)).json()

   async def get_page(self, url: str, **kw) -> FetchResult:
      """Fetch a page without raising: failures are reported in FetchResult.error."""
      try:
         r = await self.request("GET", url, raise_status=False, **kw)
      except httpx.HTTPError as exc:
         self.metrics["failed"] += 1
         self.log.warning("%s: fetch failed for %s: %s", self.store, url, exc)
         return FetchResult(error=str(exc) or type(exc).__name__, url=url)
      error = f"HTTP {r.status_code}" if r.status_code >= 400 else None
      return FetchResult(status=r.status_code, content=r.text, error=error, url=url)

   @abc.abstractmethod
   async def fetch_page(self, url: str, *, locale: str | None = None) -> FetchResult:
      ...
