from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from storefront.errors import DuplicateRecord, RecordNotFound, ValidationFailed
from storefront.models import (
   DEFAULT_PLATFORM,
   REGIONS,
   GameRecord,
   RateRule,
   RegionInfo,
   StoreSettings,
)
from storefront.pricing import overlapping_rules
from storefront.storage import JsonStore

log = logging.getLogger("storefront.admin")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NO_DATE = "none"

def _renumber(items: List[GameRecord]) -> None:
   for idx, g in enumerate(items, start=1):
      g.pop_rank = idx

class CatalogAdmin:
   """Admin-triggered writes. Each call validates first, then replaces the whole document."""

   def __init__(self, store: JsonStore):
      self.store = store

   # -------- rates / settings -----------------------------------------------

   def get_rates(self, region: str) -> List[RateRule]:
      return list(self.store.load_store().rates.get(region.upper(), []))

   def replace_rates(self, region: str, rules: Sequence[Mapping[str, Any]]) -> List[RateRule]:
      region = (region or "TR").upper()
      parsed: List[RateRule] = []
      for i, raw in enumerate(rules or []):
         try:
            parsed.append(RateRule.model_validate(raw))
         except ValidationError as exc:
            raise ValidationFailed("bad_rule", f"rule {i}: {exc.errors()[0]['msg']}") from exc
      for a, b in overlapping_rules(parsed):
         log.warning("%s rate rules %d and %d overlap; rule %d wins where both apply", region, a, b, a)

      doc = self.store.load_store()
      doc.rates[region] = parsed
      self.store.save_store(doc)
      log.info("replaced %s rate table (%d rules)", region, len(parsed))
      return parsed

   def get_settings(self) -> StoreSettings:
      return self.store.load_store().settings

   def update_settings(self, *, round_step: Any = None, whatsapp_link: Optional[str] = None,
                       default_discount_until: Any = ...) -> StoreSettings:
      doc = self.store.load_store()
      current = doc.settings.dump()
      if round_step is not None:
         current["roundStep"] = round_step
      if whatsapp_link is not None:
         current["whatsappLink"] = str(whatsapp_link)
      if default_discount_until is not ...:
         current["defaultDiscountUntil"] = str(default_discount_until) if default_discount_until else None
      doc.settings = StoreSettings.model_validate(current)
      self.store.save_store(doc)
      return doc.settings

   # -------- records ---------------------------------------------------------

   def list_games(self) -> Dict[str, Any]:
      doc = self.store.load_games()
      return {
         "updatedAt": doc.updated_at,
         "items": [
            {
               "id": g.id,
               "name": g.name,
               "platform": g.platform or "",
               "cover": g.cover,
               "popRank": g.pop_rank,
               "discountedUntil": g.discount_bucket(),
            }
            for g in doc.items
         ],
      }

   def add_game(self, payload: Mapping[str, Any]) -> GameRecord:
      g = dict(payload or {})
      if not g.get("id") or not g.get("name"):
         raise ValidationFailed("id_and_name_required")

      settings = self.store.load_store().settings
      raw_regions = g.get("regions") or {}
      regions: Dict[str, RegionInfo] = {}
      try:
         for code in REGIONS:
            info = RegionInfo.model_validate(raw_regions.get(code) or {})
            if not info.discounted_until and settings.default_discount_until:
               info.discounted_until = settings.default_discount_until
            regions[code] = info
      except ValidationError as exc:
         raise ValidationFailed("bad_region", str(exc.errors()[0]["msg"])) from exc

      doc = self.store.load_games()
      record_id = str(g["id"])
      if any(x.id == record_id for x in doc.items):
         raise DuplicateRecord(record_id)

      record = GameRecord(
         id=record_id,
         name=str(g["name"]),
         cover=str(g["cover"]) if g.get("cover") else None,
         platform=str(g["platform"]) if g.get("platform") else DEFAULT_PLATFORM,
         edition=str(g["edition"]) if g.get("edition") else None,
         pop_rank=len(doc.items) + 1,
         regions=regions,
      )
      doc.items.append(record)
      self.store.save_games(doc)
      log.info("added %s (%s), catalog size %d", record.id, record.name, len(doc.items))
      return record

   def delete_game(self, record_id: str) -> int:
      record_id = str(record_id or "").strip()
      if not record_id:
         raise ValidationFailed("id_required")
      doc = self.store.load_games()
      keep = [g for g in doc.items if g.id != record_id]
      if len(keep) == len(doc.items):
         raise RecordNotFound(record_id)
      _renumber(keep)
      doc.items = keep
      self.store.save_games(doc)
      log.info("deleted %s, catalog size %d", record_id, len(keep))
      return len(keep)

   def delete_by_discount_date(self, date: str) -> Dict[str, int]:
      raw = str(date or "").strip()
      if not raw:
         raise ValidationFailed("date_required")
      want_none = raw.lower() == NO_DATE
      if not want_none and not _DATE_RE.match(raw):
         raise ValidationFailed("bad_date", raw)

      doc = self.store.load_games()
      keep: List[GameRecord] = []
      removed = 0
      for g in doc.items:
         until = g.discount_bucket()
         hit = (not until) if want_none else (str(until) == raw)
         if hit:
            removed += 1
         else:
            keep.append(g)
      _renumber(keep)
      doc.items = keep
      self.store.save_games(doc)
      log.info("removed %d records for discount date %s", removed, raw)
      return {"removed": removed, "count": len(keep)}

   def delete_all(self) -> None:
      doc = self.store.load_games()
      n = len(doc.items)
      doc.items = []
      self.store.save_games(doc)
      log.info("cleared catalog (%d records)", n)
