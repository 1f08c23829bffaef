import math
import re
from typing import Iterable, Optional

_MARK_RX = re.compile(r"[™®©]", re.U)
_PRICE_JUNK_RX = re.compile(r"[^\d,.\-]")
_SEARCH_JUNK_RX = re.compile(r"[^a-z0-9а-я]+")
_PLATFORM_RX = re.compile(r"\b(ps\s*4|ps\s*5|playstation\s*4|playstation\s*5)\b", re.I)

_PLATFORM_MAP = {
   "ps4": "PS4",
   "ps5": "PS5",
   "playstation 4": "PS4",
   "playstation 5": "PS5",
   "playstation4": "PS4",
   "playstation5": "PS5",
}

_RU_VOICE = ("voice", "озвуч")
_RU_TEXT = ("текст", "sub", "screen")

def clean_title(name: str) -> str:
   t = _MARK_RX.sub("", name or "").strip()
   t = re.sub(r"\s{2,}", " ", t)
   return t

def collapse_ws(value: str) -> str:
   return re.sub(r"\s+", " ", value or "").strip()

def parse_price_string(value) -> Optional[float]:
   """
   Parse a store price such as "₺ 1.299,00" or "1 299,00 ₴".

   Tuned for TR/UA formatting: with both separators present the dot is a
   thousands separator and the comma the decimal one; a lone comma is a
   decimal separator. "1.299" therefore parses as 1.299. Returns None when
   nothing finite comes out.
   """
   if value is None or isinstance(value, bool):
      return None
   if isinstance(value, (int, float)):
      return float(value) if math.isfinite(value) else None
   if not isinstance(value, str):
      return None
   s = _PRICE_JUNK_RX.sub("", value).strip()
   if not s:
      return None
   if "," in s:
      if "." in s:
         s = s.replace(".", "")
      i = s.rfind(",")
      s = s[:i] + "." + s[i + 1:]
   try:
      n = float(s)
   except ValueError:
      return None
   return n if math.isfinite(n) else None

def normalize_ru_value(value) -> str:
   s = str(value or "").lower().strip()
   if not s:
      return "none"
   if s == "voice" or any(tok in s for tok in _RU_VOICE):
      return "voice"
   if s == "text" or any(tok in s for tok in _RU_TEXT):
      return "text"
   return "none"

def normalize_platform(value: str) -> str:
   if not value:
      return ""
   key = re.sub(r"\s+", " ", value.strip().lower())
   return _PLATFORM_MAP.get(key, _PLATFORM_MAP.get(key.replace(" ", ""), value.strip()))

def platform_label(values: Iterable[str]) -> Optional[str]:
   """Collapse PS4/PS5 mentions into the catalog's platform tag."""
   found = set()
   for v in values or []:
      for m in _PLATFORM_RX.finditer(str(v)):
         found.add(normalize_platform(m.group(1)))
   if found == {"PS4", "PS5"}:
      return "PS4 / PS5"
   if found:
      return found.pop()
   return None

def search_text(value: str) -> str:
   """Fold a title for search: lowercase, ё->е, non-alphanumerics to single spaces."""
   s = str(value or "").lower().replace("ё", "е")
   return collapse_ws(_SEARCH_JUNK_RX.sub(" ", s))

def date_part(value) -> str:
   return str(value or "").split("T")[0]
