from __future__ import annotations

import hmac
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

@dataclass(slots=True, frozen=True)
class RetryPolicy:
   max_attempts: int = 3
   backoff: float = 0.8          # seconds, multiplied by the attempt number

   def delay(self, attempt: int) -> float:
      return self.backoff * attempt

@dataclass(slots=True, frozen=True)
class AppConfig:
   data_dir: str = "./data"
   tr_locale: str = "tr-tr"
   ua_locale: str = "ru-ua"
   whatsapp_link: Optional[str] = None
   round_step: Optional[int] = None      # overrides the persisted setting when set
   admin_user: str = ""
   admin_pass: str = ""
   page_cache_db: Optional[str] = "page-cache.db"
   page_cache_ttl: int = 6 * 3600
   fetch_timeout: float = 90.0
   fetch_rps: float = 1.0
   per_page: int = 24
   retry: RetryPolicy = field(default_factory=RetryPolicy)

   @property
   def store_path(self) -> str:
      return os.path.join(self.data_dir, "store.json")

   @property
   def games_path(self) -> str:
      return os.path.join(self.data_dir, "games.json")

   def locales(self) -> Dict[str, str]:
      return {"TR": self.tr_locale, "UA": self.ua_locale}

   def check_admin(self, user: str, password: str) -> bool:
      if not self.admin_user or not self.admin_pass:
         return False
      user_ok = hmac.compare_digest(str(user or "").encode(), self.admin_user.encode())
      pass_ok = hmac.compare_digest(str(password or "").encode(), self.admin_pass.encode())
      return user_ok and pass_ok

def _round_step(raw: Optional[str]) -> Optional[int]:
   if not raw:
      return None
   try:
      return 100 if float(raw) == 100 else 50
   except ValueError:
      return 50

def config_from_mapping(env: Mapping[str, Optional[str]]) -> AppConfig:
   def get(key: str, default=None):
      value = env.get(key)
      value = value.strip() if isinstance(value, str) else value
      return value if value else default

   cache_db = get("PAGE_CACHE_DB", "page-cache.db")
   return AppConfig(
      data_dir=get("DATA_DIR", "./data"),
      tr_locale=get("TR_LOCALE", "tr-tr").lower(),
      ua_locale=get("UA_LOCALE", "ru-ua").lower(),
      whatsapp_link=get("WHATSAPP_LINK"),
      round_step=_round_step(get("ROUND_STEP")),
      admin_user=get("ADMIN_USER", ""),
      admin_pass=get("ADMIN_PASS", ""),
      page_cache_db=None if cache_db.lower() in {"off", "none", "0"} else cache_db,
      page_cache_ttl=int(get("PAGE_CACHE_TTL", 6 * 3600)),
      fetch_timeout=float(get("FETCH_TIMEOUT", 90.0)),
      fetch_rps=float(get("FETCH_RPS", 1.0)),
      per_page=max(1, int(get("PER_PAGE", 24))),
   )

def load_config(env_file: Optional[str] = ".env") -> AppConfig:
   """Build the configuration once at startup: .env values, overridden by the process environment."""
   env: Dict[str, Optional[str]] = {}
   if env_file and os.path.exists(env_file):
      env.update(dotenv_values(env_file))
   env.update(os.environ)
   return config_from_mapping(env)
