from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from storefront.adapters.base import FetcherConfig, FetchResult, PageFetcher
from storefront.db import PageCache
from storefront.extract.markup import looks_blocked, looks_denied
from storefront.extract.titles import pick_title
from storefront.http import accept_language
from storefront.normalize import collapse_ws

# Product pages live under store.playstation.com/{locale}/product/{id}. When a
# page cannot be read the legacy "chihiro" container API still answers JSON for
# the same product id, keyed by country/language and an age-gate value.

_PRODUCT_RE = re.compile(r"/product/([A-Z0-9_-]{10,})", re.I)
_LOCALE_RE  = re.compile(r"store\.playstation\.com/([a-z]{2}-[a-z]{2})/", re.I)

@dataclass(slots=True)
class PSNEndpoints:
   product_page: str = "https://store.playstation.com/{locale}/product/{product_id}"
   container_api: str = (
      "https://store.playstation.com/store/api/chihiro/00_09_000/container/"
      "{country}/{lang}/{age}/{product_id}"
   )
   # region -> (country, language) for the container API
   container_locales: Dict[str, Tuple[str, str]] = field(
      default_factory=lambda: {"TR": ("TR", "en"), "UA": ("UA", "ru")}
   )
   age_gates: List[str] = field(default_factory=lambda: ["999", "19"])

def product_id_from_url(url: str) -> Optional[str]:
   m = _PRODUCT_RE.search(url or "")
   return m.group(1).upper() if m else None

def locale_from_url(url: str) -> Optional[str]:
   m = _LOCALE_RE.search(url or "")
   return m.group(1).lower() if m else None

def container_direct_title(js: Any) -> Optional[str]:
   if not isinstance(js, dict):
      return None
   sku = js.get("default_sku") if isinstance(js.get("default_sku"), dict) else {}
   for value in (js.get("name"), js.get("long_name"), sku.get("name"), sku.get("title_name")):
      if isinstance(value, str) and value.strip():
         return value.strip()
   return None

class PSNFetcher(PageFetcher):
   store = "psn"

   def __init__(self, *, config: FetcherConfig | None = None,
                endpoints: PSNEndpoints | None = None,
                cache: PageCache | None = None, **kw):
      super().__init__(config=config, **kw)
      self.endpoints = endpoints or PSNEndpoints()
      self.cache = cache

   def product_url(self, locale: str, product_id: str) -> str:
      return self.endpoints.product_page.format(locale=locale, product_id=product_id)

   async def fetch_page(self, url: str, *, locale: str | None = None) -> FetchResult:
      if self.cache is not None:
         hit = self.cache.get(url)
         if hit is not None:
            self.metrics["cached"] += 1
            self.log.debug("[%s] cache hit %s", self.store, url)
            return FetchResult(status=hit.status, content=hit.content, url=url, cached=True)

      headers = {"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"}
      if locale:
         headers["Accept-Language"] = accept_language(locale)
      page = await self.get_page(url, headers=headers)
      self.log.info("[%s] GET %s -> %s", self.store, url, page.status or page.error)

      if self.cache is not None and page.error is None and not looks_blocked(page.content):
         self.cache.put(url, page.status, page.content)
      return page

   async def fetch_container_title(self, product_id: str, region: str) -> Optional[str]:
      """Title from the container API; age-gate variants are tried in order."""
      country, lang = self.endpoints.container_locales.get(region, self.endpoints.container_locales["TR"])
      for age in self.endpoints.age_gates:
         url = self.endpoints.container_api.format(country=country, lang=lang, age=age, product_id=product_id)
         try:
            js = await self.get_json(url, headers={"Accept": "application/json,text/plain,*/*"})
         except (httpx.HTTPError, ValueError) as exc:
            self.log.debug("[%s] container lookup %s failed: %s", self.store, url, exc)
            continue
         title = container_direct_title(js) or pick_title(js)
         if title and not looks_denied(title) and not looks_blocked(title):
            self.log.info("[%s] %s title recovered from container API (%s)", self.store, region, age)
            return collapse_ws(title)
      return None
