from __future__ import annotations

from typing import Any, Dict, List, Optional

from storefront.adapters.base import FetchResult
from storefront.errors import ImportRejected
from storefront.extract.languages import detect_languages, next_data
from storefront.extract.markup import json_ld_blocks, ld_strings, parse_page
from storefront.extract.titles import walk_strings
from storefront.models import (
   DEFAULT_PLATFORM,
   PRIMARY_REGION,
   REGIONS,
   SECONDARY_REGION,
   STANDARD_EDITION,
   ImportResult,
   RegionParse,
)
from storefront.normalize import platform_label

def detect_platform(content: str) -> Optional[str]:
   texts: List[str] = list(ld_strings(json_ld_blocks(content)))
   tree = next_data(content)
   if tree is not None:
      texts.extend(v for p, v in walk_strings(tree) if "platform" in p.lower())
   return platform_label(texts)

def parse_region(page: FetchResult) -> RegionParse:
   data = parse_page(page.content)
   if data.blocked:
      return RegionParse(blocked=True)
   langs = detect_languages(page.content)
   parsed = RegionParse(
      blocked=False,
      name=data.title,
      edition=data.edition,
      cover=data.cover,
      sale_price=data.price,
      currency=data.currency,
      disc_perc=data.discount,
      # the store page is not trusted for the expiry date; the admin sets it
      discounted_until=None,
      ru=langs.ru,
      sub=langs.sub,
      platform=detect_platform(page.content),
   )
   if parsed.sub:
      parsed.edition = STANDARD_EDITION
   return parsed

def propagate_discount(parsed: Dict[str, RegionParse]) -> None:
   """Primary discount wins in every secondary region, whatever was parsed there."""
   primary = parsed.get(PRIMARY_REGION)
   if primary is None or primary.blocked:
      return
   for code, region in parsed.items():
      if code != PRIMARY_REGION:
         region.disc_perc = primary.disc_perc

def build_record(result: ImportResult) -> Dict[str, Any]:
   """Turn a usable import into the payload accepted by CatalogAdmin.add_game."""
   if not result.ok or not result.product_id:
      raise ImportRejected("blocked" if not result.ok else "product_id_missing")
   usable = {code: p for code, p in result.parsed.items() if not p.blocked}
   primary = usable[PRIMARY_REGION]
   secondary = usable.get(SECONDARY_REGION)

   def first(attr: str):
      for region in (primary, secondary):
         value = getattr(region, attr) if region is not None else None
         if value:
            return value
      return None

   name = first("name")
   if not name:
      raise ImportRejected("title_missing")
   any_sub = any(p.sub for p in usable.values())

   regions: Dict[str, Dict[str, Any]] = {}
   for code in REGIONS:
      region = usable.get(code)
      if region is None:
         # blocked regions keep catalog defaults
         continue
      regions[code] = {
         "salePrice": region.sale_price or 0,
         "discPerc": region.disc_perc,
         "discountedUntil": None,
         "ru": region.ru,
         "sub": region.sub,
      }
   return {
      "id": result.product_id,
      "name": name,
      "cover": first("cover"),
      "platform": first("platform") or DEFAULT_PLATFORM,
      "edition": STANDARD_EDITION if any_sub else first("edition"),
      "regions": regions,
   }
