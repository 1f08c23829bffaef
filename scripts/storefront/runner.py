from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from rich.progress import Progress

from storefront.adapters.base import FetchResult
from storefront.adapters.psn import PSNFetcher, locale_from_url, product_id_from_url
from storefront.config import AppConfig, RetryPolicy
from storefront.errors import ValidationFailed
from storefront.extract.markup import looks_blocked, looks_denied
from storefront.models import PRIMARY_REGION, REGIONS, ImportResult, RegionParse
from storefront.records import parse_region, propagate_discount

log = logging.getLogger("storefront.runner")

Sleep = Callable[[float], Awaitable[None]]

def page_blocked(page: FetchResult) -> bool:
   return not page.content or looks_blocked(page.content)

async def fetch_with_retry(
   fetcher: PSNFetcher,
   urls: Dict[str, str],
   locales: Dict[str, str],
   policy: RetryPolicy,
   *,
   sleep: Sleep = asyncio.sleep,
   progress: Optional[Progress] = None,
   task_id: Optional[int] = None,
) -> Dict[str, FetchResult]:
   """Fetch every region's page; refetch all of them while any comes back blocked."""
   pages: Dict[str, FetchResult] = {}
   for attempt in range(1, policy.max_attempts + 1):
      for code, url in urls.items():
         if progress is not None and task_id is not None:
            progress.update(task_id, description=f"{code}: attempt {attempt}/{policy.max_attempts}")
         pages[code] = await fetcher.fetch_page(url, locale=locales.get(code))
      blocked = [code for code, page in pages.items() if page_blocked(page)]
      if not blocked:
         break
      log.warning("attempt %d/%d: blocked content for %s", attempt, policy.max_attempts, ",".join(blocked))
      if attempt < policy.max_attempts:
         await sleep(policy.delay(attempt))
   return pages

async def import_product(
   url: str,
   fetcher: PSNFetcher,
   config: AppConfig,
   *,
   sleep: Sleep = asyncio.sleep,
   progress: Optional[Progress] = None,
   task_id: Optional[int] = None,
) -> ImportResult:
   url = (url or "").strip()
   if not url:
      raise ValidationFailed("url_required")

   product_id = product_id_from_url(url)
   locales = config.locales()
   url_locale = locale_from_url(url)
   if url_locale:
      locales[PRIMARY_REGION] = url_locale
   urls = {
      code: fetcher.product_url(locales[code], product_id) if product_id else url
      for code in REGIONS
   }
   log.info("importing %s (product %s)", url, product_id or "?")

   pages = await fetch_with_retry(fetcher, urls, locales, config.retry, sleep=sleep,
                                  progress=progress, task_id=task_id)
   parsed: Dict[str, RegionParse] = {code: parse_region(pages[code]) for code in REGIONS}
   propagate_discount(parsed)

   if product_id:
      for code, region in parsed.items():
         if region.name and not looks_denied(region.name):
            continue
         if progress is not None and task_id is not None:
            progress.update(task_id, description=f"{code}: container title lookup")
         title = await fetcher.fetch_container_title(product_id, code)
         if title:
            region.name = title

   result = ImportResult(
      ok=not parsed[PRIMARY_REGION].blocked,
      product_id=product_id,
      urls=urls,
      status={code: pages[code].status or None for code in REGIONS},
      errors={code: pages[code].error for code in REGIONS},
      parsed=parsed,
   )
   log.info("import %s: ok=%s name=%r", product_id or url, result.ok, parsed[PRIMARY_REGION].name)
   return result
