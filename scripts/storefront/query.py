from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from storefront.models import (
   DEFAULT_PLATFORM,
   REGIONS,
   STANDARD_EDITION,
   CatalogPage,
   GameListItem,
   GameRecord,
   GamesDocument,
   StoreDocument,
)
from storefront.normalize import date_part, search_text
from storefront.pricing import compute_display_price

SORTS = ("pop", "price_asc", "price_desc")
UNRANKED = 999999

@dataclass(slots=True)
class CatalogQuery:
   region: str = "TR"
   q: str = ""
   platform: str = ""
   until: str = ""
   sort: str = "pop"
   page: int = 1

   def __post_init__(self):
      self.region = (self.region or "TR").strip().upper()
      self.q = (self.q or "").strip()
      self.platform = (self.platform or "").strip()
      self.until = (self.until or "").strip()
      self.sort = self.sort if self.sort in SORTS else "pop"
      try:
         self.page = max(1, int(self.page))
      except (TypeError, ValueError):
         self.page = 1

# ---------- matching / scoring ----------

def smart_match(name: str, q: str) -> bool:
   """Every query token must occur inside the folded name (AND, not phrase)."""
   nq = search_text(q)
   if not nq:
      return True
   nn = search_text(name)
   return all(t in nn for t in nq.split(" "))

def relevance_score(name: str, q: str) -> int:
   nq = search_text(q)
   nn = search_text(name)
   if not nq or not nn:
      return 0
   if nn == nq:
      return 400
   if nn.startswith(nq):
      return 320
   if nq in nn:
      return 240

   tokens = nq.split(" ")
   words = nn.split(" ")
   starts = sum(1 for t in tokens if any(w.startswith(t) for w in words))
   score = 180 + min(80, starts * 20)
   score += max(0, 40 - min(40, abs(len(nn) - len(nq))))
   return score

def platform_pass(game_platform: str, wanted: str) -> bool:
   f = (wanted or "").strip().upper()
   if f not in {"PS4", "PS5"}:
      return True
   return f in (game_platform or "").upper()

# ---------- listing ----------

def list_item(g: GameRecord, region: str, store: StoreDocument) -> GameListItem:
   reg = g.region(region)
   store_price = reg.sale_price if reg else 0.0
   any_sub = g.any_sub()
   return GameListItem(
      id=g.id,
      name=g.name,
      edition=STANDARD_EDITION if any_sub else (g.edition or STANDARD_EDITION),
      ru=reg.ru if reg else "none",
      sub=any_sub,
      platform=g.platform or DEFAULT_PLATFORM,
      cover=g.cover or "",
      disc_perc=reg.disc_perc if reg else 0,
      discounted_until=reg.discounted_until if reg else None,
      store_price=store_price,
      final_price_rub=compute_display_price(store_price, store.rates.get(region, []), store.settings.round_step),
      pop_rank=g.pop_rank or UNRANKED,
   )

def _sort_key(item: GameListItem, sort: str):
   if sort == "price_asc":
      return (item.final_price_rub, item.pop_rank)
   if sort == "price_desc":
      return (-item.final_price_rub, item.pop_rank)
   return (item.pop_rank,)

def query_catalog(records: Sequence[GameRecord], store: StoreDocument, query: CatalogQuery,
                  *, per_page: int = 24, updated_at: Optional[str] = None) -> CatalogPage:
   rows = [g for g in records if smart_match(g.name, query.q)]
   if query.platform:
      rows = [g for g in rows if platform_pass(g.platform, query.platform)]

   items = [list_item(g, query.region, store) for g in rows]
   if query.until:
      target = date_part(query.until)
      items = [it for it in items if date_part(it.discounted_until) == target]

   if query.q:
      scored = [(relevance_score(it.name, query.q), it) for it in items]
      scored.sort(key=lambda pair: (-pair[0], *_sort_key(pair[1], query.sort)))
      items = [it for _, it in scored]
   else:
      items.sort(key=lambda it: _sort_key(it, query.sort))

   start = (query.page - 1) * per_page
   return CatalogPage(
      region=query.region,
      page=query.page,
      per_page=per_page,
      total=len(items),
      items=items[start:start + per_page],
      updated_at=updated_at,
   )

def query_games(doc: GamesDocument, store: StoreDocument, query: CatalogQuery, *, per_page: int = 24) -> CatalogPage:
   return query_catalog(doc.items, store, query, per_page=per_page, updated_at=doc.updated_at)

# ---------- summaries ----------

def discount_dates(records: Sequence[GameRecord], region: str) -> List[dict]:
   region = (region or "TR").upper()
   counts: Counter = Counter()
   for g in records:
      reg = g.region(region)
      until = date_part(reg.discounted_until if reg else "")
      if until:
         counts[until] += 1
   return [{"date": d, "count": counts[d]} for d in sorted(counts)]

def catalog_meta(doc: GamesDocument, store: StoreDocument) -> dict:
   has_any_until = {code: False for code in REGIONS}
   for g in doc.items:
      for code in REGIONS:
         reg = g.region(code)
         if reg is not None and reg.discounted_until:
            has_any_until[code] = True
   return {
      "settings": store.settings.dump(),
      "updatedAt": {"games": doc.updated_at},
      "hasAnyUntil": has_any_until,
      "total": len(doc.items),
   }
