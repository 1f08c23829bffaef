from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

_URL_RE = re.compile(r"^https?://", re.I)
_ID_RE = re.compile(r"^[A-Z]{2}\d{3,}")
_PRICE_TOKEN_RE = re.compile(r"\btry\b|\buah\b|[₺₴]")

@dataclass(slots=True)
class Candidate:
   text: str
   path: str

def walk_strings(node: Any, path: str = "") -> Iterator[Tuple[str, str]]:
   """Yield (dotted path, value) for every string reachable in a decoded JSON tree."""
   if isinstance(node, str):
      yield path, node
   elif isinstance(node, dict):
      for key, value in node.items():
         yield from walk_strings(value, f"{path}.{key}" if path else str(key))
   elif isinstance(node, list):
      for i, value in enumerate(node):
         yield from walk_strings(value, f"{path}[{i}]")
   # numbers, booleans and null carry no title

def _rejected(text: str) -> bool:
   low = text.lower()
   if "access denied" in low or "forbidden" in low or low == "denied":
      return True
   return bool(_URL_RE.match(text) or _ID_RE.match(text))

def collect_candidates(payload: Any) -> List[Candidate]:
   seen = set()
   out: List[Candidate] = []
   for path, value in walk_strings(payload):
      text = value.strip()
      if len(text) < 2 or _rejected(text):
         continue
      key = text.lower()
      if key in seen:
         continue
      seen.add(key)
      out.append(Candidate(text=text, path=path))
   return out

def score_candidate(text: str, path: str) -> int:
   s = 0
   p = path.lower()
   if "localized" in p: s += 6
   if "title" in p: s += 6
   if "name" in p: s += 5
   if "product" in p: s += 2
   if "default_sku" in p: s += 1
   n = len(text)
   if 6 <= n <= 60:
      s += 4
   elif 60 < n <= 120:
      s += 2
   elif n < 6:
      s -= 2
   if _PRICE_TOKEN_RE.search(text.lower()):
      s -= 3
   return s

def rank_candidates(candidates: List[Candidate]) -> List[Candidate]:
   # sorted() is stable: equal scores keep discovery order
   return sorted(candidates, key=lambda c: score_candidate(c.text, c.path), reverse=True)

def pick_title(payload: Any) -> Optional[str]:
   ranked = rank_candidates(collect_candidates(payload))
   return ranked[0].text if ranked else None
