from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, List

from pydantic import ValidationError

from storefront.config import AppConfig
from storefront.models import GameRecord, GamesDocument, StoreDocument

log = logging.getLogger("storefront.storage")

def utc_stamp() -> str:
   return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def read_json(path: str) -> Any:
   with open(path, "r", encoding="utf-8-sig") as fp:
      return json.load(fp)

def write_json(path: str, data: Any) -> None:
   """Replace the whole document: write a sibling temp file, then rename over."""
   folder = os.path.dirname(os.path.abspath(path))
   os.makedirs(folder, exist_ok=True)
   fd, tmp = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=folder)
   try:
      with os.fdopen(fd, "w", encoding="utf-8") as fp:
         json.dump(data, fp, ensure_ascii=False, indent=2)
      os.replace(tmp, path)
   except BaseException:
      if os.path.exists(tmp):
         os.remove(tmp)
      raise

class JsonStore:
   """store.json (settings + rate tables) and games.json (catalog), read fresh on every call."""

   def __init__(self, config: AppConfig):
      self.config = config

   def _read(self, path: str) -> Any:
      if not os.path.exists(path):
         return None
      try:
         return read_json(path)
      except (OSError, ValueError) as exc:
         log.warning("unreadable %s, using defaults: %s", path, exc)
         return None

   def _load(self, path: str, model):
      raw = self._read(path)
      if raw is None:
         return model()
      try:
         return model.model_validate(raw)
      except ValidationError as exc:
         log.warning("invalid %s, using defaults: %s", path, exc)
         return model()

   def load_store(self) -> StoreDocument:
      doc = self._load(self.config.store_path, StoreDocument)
      if self.config.whatsapp_link:
         doc.settings.whatsapp_link = self.config.whatsapp_link
      if self.config.round_step:
         doc.settings.round_step = self.config.round_step
      return doc

   def save_store(self, doc: StoreDocument) -> None:
      write_json(self.config.store_path, doc.dump())

   def load_games(self) -> GamesDocument:
      """
      Records are validated one at a time: a record that no longer validates
      is dropped with a warning instead of taking the rest of the catalog
      with it on the next write.
      """
      path = self.config.games_path
      raw = self._read(path)
      if not isinstance(raw, dict):
         if raw is not None:
            log.warning("invalid %s, using defaults: not a JSON object", path)
         return GamesDocument()
      items: List[GameRecord] = []
      payloads = raw.get("items")
      for i, payload in enumerate(payloads if isinstance(payloads, list) else []):
         try:
            items.append(GameRecord.model_validate(payload))
         except ValidationError as exc:
            rid = payload.get("id") if isinstance(payload, dict) else None
            log.warning("%s: dropping record #%d (%s): %s", path, i, rid or "?", exc.errors()[0]["msg"])
      updated_at = raw.get("updatedAt")
      return GamesDocument(updated_at=updated_at if isinstance(updated_at, str) else None, items=items)

   def save_games(self, doc: GamesDocument, *, touch: bool = True) -> None:
      if touch:
         doc.updated_at = utc_stamp()
      write_json(self.config.games_path, doc.dump())
