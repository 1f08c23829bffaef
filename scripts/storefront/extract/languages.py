from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from storefront.extract.markup import decode_html
from storefront.extract.titles import walk_strings

_NEXT_RE   = re.compile(r'<script[^>]+id=["\']__NEXT_DATA__["\'][^>]*>(.*?)</script>', re.S | re.I)
_SCRIPT_RE = re.compile(r"<(script|style|noscript)[^>]*>.*?</\1>", re.S | re.I)
_BLOCK_RE  = re.compile(r"<\s*(br|/p|/div|/li|/h\d|/tr|/dt|/dd|/section)[^>]*>", re.I)
_TAG_RE    = re.compile(r"<[^>]+>")

_RU_RE = re.compile(r"(Russian|Русск|Русский|Русская|Русское|Російськ|ru-ru|\bru\b)", re.I)
_EA_RE = re.compile(r"\bea\s*play\b", re.I)
_PSPLUS_RE = re.compile(r"playstation\s*plus|ps\s*plus", re.I)
_EXTRA_RE = re.compile(r"\bextra\b", re.I)

AUDIO_LABELS = (
   "audio languages", "voice languages", "dub languages", "язык озвучки", "озвучка",
   "дубляж", "ses dilleri", "ses dili", "seslendirme",
)
SUBTITLE_LABELS = (
   "subtitles", "subtitle languages", "screen languages", "text languages", "субтитры",
   "субтитри", "текст", "altyazı", "altyazılar", "ekran dilleri", "ekran dili",
)

@dataclass(slots=True)
class LanguageInfo:
   ru: str = "none"
   sub: str = ""
   source: str = ""

@dataclass(slots=True)
class _Buckets:
   audio: List[str] = field(default_factory=list)
   subs: List[str] = field(default_factory=list)
   screen: List[str] = field(default_factory=list)

def is_ru_token(value: Any) -> bool:
   s = str(value or "").lower().strip()
   return s in {"ru", "ru-ru", "ru_ru"} or "russian" in s or "русск" in s or "російс" in s

def visible_text(content: str) -> str:
   """Rough innerText: drop scripts/styles, break on block tags, strip the rest."""
   s = _SCRIPT_RE.sub(" ", content or "")
   s = _BLOCK_RE.sub("\n", s)
   s = decode_html(_TAG_RE.sub(" ", s))
   lines = (re.sub(r"[ \t\r\f\v]+", " ", ln).strip() for ln in s.split("\n"))
   return "\n".join(ln for ln in lines if ln)

def next_data(content: str) -> Optional[Any]:
   m = _NEXT_RE.search(content or "")
   if not m:
      return None
   try:
      return json.loads(m.group(1))
   except ValueError:
      return None

def _bucket(tree: Any) -> _Buckets:
   acc = _Buckets()
   for path, value in _walk_primitives(tree):
      p = path.lower()
      if "audio" in p or "voice" in p or "dub" in p:
         acc.audio.append(value)
      elif "subtitle" in p:
         acc.subs.append(value)
      elif "screen" in p or "text" in p or "interface" in p:
         acc.screen.append(value)
   return acc

def _walk_primitives(tree: Any):
   # list indexes are not part of the classified path
   for path, value in walk_strings(tree):
      yield re.sub(r"\[\d+\]", "", path), value

def detect_subscription(text: str) -> str:
   if _EA_RE.search(text):
      return "eaplay"
   if _PSPLUS_RE.search(text) and _EXTRA_RE.search(text):
      return "psplus_extra"
   return ""

def _label_block(lines: List[str], labels: tuple) -> str:
   for i, line in enumerate(lines):
      t = line.lower()
      if any(t == l or t.startswith(l + ":") or t.startswith(l + " ") for l in labels):
         return " | ".join(lines[i:i + 20])
   return ""

def detect_languages(content: str) -> LanguageInfo:
   text = visible_text(content)
   sub = detect_subscription(text)

   tree = next_data(content)
   if tree is not None:
      acc = _bucket(tree)
      ru_voice = any(is_ru_token(v) for v in acc.audio)
      ru_text = any(is_ru_token(v) for v in acc.subs + acc.screen)
      if ru_voice or ru_text:
         return LanguageInfo(ru="voice" if ru_voice else "text", sub=sub, source="next")

   lines = text.split("\n")
   ru_voice = bool(_RU_RE.search(_label_block(lines, AUDIO_LABELS)))
   ru_text = bool(_RU_RE.search(_label_block(lines, SUBTITLE_LABELS)))
   ru = "voice" if ru_voice else ("text" if ru_text else "none")
   return LanguageInfo(ru=ru, sub=sub, source="text")
