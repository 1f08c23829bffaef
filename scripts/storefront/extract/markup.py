from __future__ import annotations

import html as htmllib
import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from storefront.normalize import clean_title, collapse_ws, parse_price_string

# Every field is resolved by an ordered chain of matchers. A matcher takes the
# page (plus whatever was resolved before it) and returns a value or None; the
# first non-empty value wins.

_JSONLD_RE = re.compile(r'<script[^>]+type=["\']application/ld\+json["\'][^>]*>(.*?)</script>', re.S | re.I)
_H1_RE     = re.compile(r"<h1[^>]*>(.*?)</h1>", re.S | re.I)
_TITLE_RE  = re.compile(r"<title[^>]*>(.*?)</title>", re.S | re.I)
_TAG_RE    = re.compile(r"<[^>]+>")
_HERO_RE   = re.compile(
   r'<img[^>]+src=["\']([^"\']+store\.playstation\.com[^"\']+\.(?:jpg|jpeg|png|webp)[^"\']*)["\']',
   re.I,
)
_DISCOUNT_RES = (
   re.compile(r"Save\s*(\d{1,3})%", re.I),
   re.compile(r"%(\d{1,3})\s*indirim", re.I),
)

_BLOCK_MARKERS_RE = re.compile(
   r"(Sorry, you have been blocked|Access Denied|Forbidden|Request blocked|"
   r"Checking your browser|cf-browser-verification|captcha|Cloudflare)",
   re.I,
)
_CONTENT_MARKERS_RE = re.compile(r"__NEXT_DATA__|data-reactroot|application/ld\+json", re.I)

_EDITION_RES = (
   re.compile(r"\b(Standard|Premium|Ultimate|Gold|Complete|Definitive|Anniversary)\s+Edition\b", re.I),
   re.compile(r"\bDigital\s+Deluxe\b", re.I),
   re.compile(r"\bDeluxe\s+Edition\b", re.I),
   re.compile(r"\bCollector'?s\s+Edition\b", re.I),
   re.compile(r"\bGame\s+of\s+the\s+Year\b", re.I),
   re.compile(r"\b(Deluxe|Ultimate|Premium)\s+Bundle\b", re.I),
)
_LOWER_WORDS = {"of", "the"}

Matcher = Callable[[str], Optional[str]]

@dataclass(slots=True)
class PageData:
   blocked: bool
   title: Optional[str] = None
   cover: Optional[str] = None
   edition: Optional[str] = None
   price: Optional[float] = None
   currency: Optional[str] = None
   discount: int = 0

# ---------- generic helpers ----------

def first_match(matchers: Iterable[Matcher], content: str) -> Optional[str]:
   for matcher in matchers:
      value = matcher(content)
      if value:
         return value
   return None

def decode_html(s: str) -> str:
   return htmllib.unescape(s or "")

def strip_tags(fragment: str) -> str:
   return collapse_ws(_TAG_RE.sub(" ", fragment or ""))

def looks_blocked(content: str) -> bool:
   """Denial/anti-bot markers present and no sign of a real product page."""
   h = str(content or "")
   return bool(_BLOCK_MARKERS_RE.search(h)) and not _CONTENT_MARKERS_RE.search(h)

def looks_denied(value: Optional[str]) -> bool:
   if not value or not isinstance(value, str):
      return False
   low = value.lower()
   return "access denied" in low or "forbidden" in low or "denied" in low

# ---------- structured data ----------

def json_ld_blocks(content: str) -> List[Any]:
   out: List[Any] = []
   for m in _JSONLD_RE.finditer(content or ""):
      try:
         out.append(json.loads(m.group(1).strip()))
      except ValueError:
         continue
   return out

def _ld_nodes(blocks: Sequence[Any]) -> Iterator[dict]:
   """Top-level objects of every block, followed by their @graph members."""
   for block in blocks:
      for node in (block if isinstance(block, list) else [block]):
         if not isinstance(node, dict):
            continue
         yield node
         for g in node.get("@graph") or []:
            if isinstance(g, dict):
               yield g

def ld_image(blocks: Sequence[Any]) -> Optional[str]:
   for node in _ld_nodes(blocks):
      image = node.get("image")
      if isinstance(image, list):
         image = image[0] if image else None
      if isinstance(image, dict):
         image = image.get("url")
      if image:
         return str(image)
   return None

def _offer_price(offer: Any) -> Optional[Tuple[float, Optional[str]]]:
   if not isinstance(offer, dict):
      return None
   price = parse_price_string(offer.get("price"))
   if price is None:
      return None
   return price, offer.get("priceCurrency") or None

def ld_offer(blocks: Sequence[Any]) -> Optional[Tuple[float, Optional[str]]]:
   for node in _ld_nodes(blocks):
      offers = node.get("offers")
      for offer in (offers if isinstance(offers, list) else [offers]):
         found = _offer_price(offer)
         if found:
            return found
   return None

def ld_strings(blocks: Sequence[Any]) -> List[str]:
   out: List[str] = []
   for node in _ld_nodes(blocks):
      out.extend(v for v in node.values() if isinstance(v, str))
   return out

# ---------- title ----------

def meta_content(prop: str) -> Matcher:
   rx = re.compile(
      r'<meta[^>]+(?:property|name)=["\']' + re.escape(prop) + r'["\'][^>]+content=["\']([^"\']+)["\']',
      re.I,
   )

   def match(content: str) -> Optional[str]:
      m = rx.search(content)
      return decode_html(m.group(1)).strip() if m else None

   match.__name__ = f"meta[{prop}]"
   return match

def h1_text(content: str) -> Optional[str]:
   m = _H1_RE.search(content)
   if not m:
      return None
   return decode_html(strip_tags(m.group(1))) or None

def title_tag(content: str) -> Optional[str]:
   m = _TITLE_RE.search(content)
   if not m:
      return None
   return decode_html(strip_tags(m.group(1))) or None

TITLE_CHAIN: Tuple[Matcher, ...] = (
   meta_content("og:title"),
   meta_content("twitter:title"),
   h1_text,
   title_tag,
)

def extract_title(content: str) -> Optional[str]:
   return first_match(TITLE_CHAIN, content)

# ---------- cover ----------

def img_by_alt(alt: Optional[str]) -> Matcher:
   def match(content: str) -> Optional[str]:
      if not alt:
         return None
      safe = re.escape(alt)
      m = (re.search(r'<img[^>]+alt=["\']' + safe + r'["\'][^>]+src=["\']([^"\']+)["\']', content, re.I)
           or re.search(r'<img[^>]+src=["\']([^"\']+)["\'][^>]+alt=["\']' + safe + r'["\']', content, re.I))
      return m.group(1) if m else None
   return match

def hero_image(content: str) -> Optional[str]:
   m = _HERO_RE.search(content)
   return m.group(1) if m else None

def cover_chain(blocks: Sequence[Any], title: Optional[str]) -> Tuple[Matcher, ...]:
   return (
      meta_content("og:image"),
      meta_content("twitter:image"),
      lambda _content: ld_image(blocks),
      img_by_alt(title),
      hero_image,
   )

def extract_cover(content: str, blocks: Sequence[Any] | None = None, title: Optional[str] = None) -> Optional[str]:
   if blocks is None:
      blocks = json_ld_blocks(content)
   found = first_match(cover_chain(blocks, title), content)
   return found.strip() if found else None

# ---------- discount / edition ----------

def extract_discount(content: str) -> int:
   for rx in _DISCOUNT_RES:
      m = rx.search(content or "")
      if m:
         return min(100, int(m.group(1)))
   return 0

def normalize_edition(matched: str) -> str:
   out = collapse_ws(matched)
   if re.fullmatch(r"digital\s+deluxe", out, re.I):
      out = "Digital Deluxe Edition"
   elif re.fullmatch(r"game\s+of\s+the\s+year", out, re.I):
      out = "Game of the Year Edition"
   words = [w[:1].upper() + w[1:].lower() for w in out.split(" ")]
   return " ".join(w.lower() if w.lower() in _LOWER_WORDS else w for w in words)

def edition_from_text(text: Optional[str]) -> Optional[str]:
   if not text:
      return None
   for rx in _EDITION_RES:
      m = rx.search(str(text))
      if m:
         return normalize_edition(m.group(0))
   return None

def extract_edition(title: Optional[str], blocks: Sequence[Any], content: str) -> Optional[str]:
   for text in [title, *ld_strings(blocks), content]:
      edition = edition_from_text(text)
      if edition:
         return edition
   return None

# ---------- page ----------

def parse_page(content: str) -> PageData:
   if not content or looks_blocked(content):
      return PageData(blocked=True)
   blocks = json_ld_blocks(content)
   resolved = extract_title(content)
   title = collapse_ws(clean_title(resolved)) if resolved and not looks_denied(resolved) else None
   offer = ld_offer(blocks)
   return PageData(
      blocked=False,
      title=title or None,
      cover=extract_cover(content, blocks, resolved),
      edition=extract_edition(resolved, blocks, content),
      price=offer[0] if offer else None,
      currency=offer[1] if offer else None,
      discount=extract_discount(content),
   )
