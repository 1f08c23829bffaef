from __future__ import annotations

from typing import Any, Dict, Optional


class StorefrontError(Exception):
   """Base for rejections reported back to the caller."""

   code: str = "error"

   def __init__(self, code: Optional[str] = None, detail: Optional[str] = None):
      self.code = code or self.code
      self.detail = detail
      super().__init__(f"{self.code}: {detail}" if detail else self.code)

   def as_dict(self) -> Dict[str, Any]:
      out: Dict[str, Any] = {"ok": False, "error": self.code}
      if self.detail:
         out["detail"] = self.detail
      return out


class ValidationFailed(StorefrontError):
   code = "invalid"


class DuplicateRecord(StorefrontError):
   code = "already_exists"

   def __init__(self, record_id: str):
      super().__init__(detail=record_id)
      self.record_id = record_id


class RecordNotFound(StorefrontError):
   code = "not_found"

   def __init__(self, record_id: str):
      super().__init__(detail=record_id)
      self.record_id = record_id


class ImportRejected(StorefrontError):
   code = "blocked"
