from __future__ import annotations

import math
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.normalize import normalize_ru_value

REGIONS = ("TR", "UA")
PRIMARY_REGION = "TR"
SECONDARY_REGION = "UA"

DEFAULT_PLATFORM = "PS4 / PS5"
STANDARD_EDITION = "Standard Edition"

RuLevel = Literal["voice", "text", "none"]


class _Model(BaseModel):
   model_config = ConfigDict(populate_by_name=True, extra="ignore")

   def dump(self) -> dict:
      return self.model_dump(mode="json", by_alias=True)


class RegionInfo(_Model):
   sale_price: float = Field(default=0.0, ge=0, alias="salePrice")
   disc_perc: int = Field(default=0, ge=0, le=100, alias="discPerc")
   discounted_until: Optional[str] = Field(default=None, alias="discountedUntil")
   ru: RuLevel = "none"
   sub: str = ""

   @field_validator("sale_price", mode="before")
   @classmethod
   def _none_price(cls, v):
      return 0.0 if v is None or v == "" else v

   @field_validator("disc_perc", mode="before")
   @classmethod
   def _none_disc(cls, v):
      if v is None or v == "":
         return 0
      # older catalogs carry fractional percents such as 12.5
      if isinstance(v, float) and math.isfinite(v):
         return round(v)
      return v

   @field_validator("ru", mode="before")
   @classmethod
   def _ru_level(cls, v):
      return normalize_ru_value(v)

   @field_validator("sub", mode="before")
   @classmethod
   def _sub(cls, v):
      return str(v or "")


class GameRecord(_Model):
   id: str
   name: str
   edition: Optional[str] = None
   platform: str = DEFAULT_PLATFORM
   cover: Optional[str] = None
   pop_rank: int = Field(default=0, alias="popRank")
   regions: Dict[str, RegionInfo] = Field(default_factory=dict)

   def region(self, code: str) -> Optional[RegionInfo]:
      return self.regions.get(code)

   def any_sub(self) -> str:
      for code in (PRIMARY_REGION, SECONDARY_REGION):
         info = self.regions.get(code)
         if info is not None and info.sub:
            return info.sub
      return ""

   def discount_bucket(self) -> Optional[str]:
      """Discount date used for admin bucketing: primary region first."""
      for code in (PRIMARY_REGION, SECONDARY_REGION):
         info = self.regions.get(code)
         if info is not None and info.discounted_until:
            return info.discounted_until
      return None


class RateRule(_Model):
   min: float = Field(allow_inf_nan=False)
   max: Optional[float] = Field(default=None, allow_inf_nan=False)
   rate: float = Field(allow_inf_nan=False)

   @field_validator("max", mode="before")
   @classmethod
   def _open_max(cls, v):
      return None if v is None or v == "" else v


class StoreSettings(_Model):
   round_step: Literal[50, 100] = Field(default=50, alias="roundStep")
   whatsapp_link: str = Field(default="", alias="whatsappLink")
   default_discount_until: Optional[str] = Field(default=None, alias="defaultDiscountUntil")

   @field_validator("round_step", mode="before")
   @classmethod
   def _step(cls, v):
      try:
         return 100 if float(v) == 100 else 50
      except (TypeError, ValueError):
         return 50


class StoreDocument(_Model):
   settings: StoreSettings = Field(default_factory=StoreSettings)
   rates: Dict[str, List[RateRule]] = Field(default_factory=lambda: {code: [] for code in REGIONS})


class GamesDocument(_Model):
   updated_at: Optional[str] = Field(default=None, alias="updatedAt")
   items: List[GameRecord] = Field(default_factory=list)


class GameListItem(_Model):
   id: str
   name: str
   edition: str
   ru: RuLevel
   sub: str
   platform: str
   cover: str
   disc_perc: int = Field(alias="discPerc")
   discounted_until: Optional[str] = Field(default=None, alias="discountedUntil")
   store_price: float = Field(alias="storePrice")
   final_price_rub: int = Field(alias="finalPriceRub")
   pop_rank: int = Field(alias="popRank")


class CatalogPage(_Model):
   region: str
   page: int
   per_page: int = Field(alias="perPage")
   total: int
   items: List[GameListItem] = Field(default_factory=list)
   updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class RegionParse(_Model):
   blocked: bool = False
   name: Optional[str] = None
   edition: Optional[str] = None
   cover: Optional[str] = None
   sale_price: Optional[float] = Field(default=None, alias="salePrice")
   currency: Optional[str] = None
   disc_perc: int = Field(default=0, alias="discPerc")
   discounted_until: Optional[str] = Field(default=None, alias="discountedUntil")
   ru: RuLevel = "none"
   sub: str = ""
   platform: Optional[str] = None


class ImportResult(_Model):
   ok: bool
   product_id: Optional[str] = Field(default=None, alias="productId")
   urls: Dict[str, str] = Field(default_factory=dict)
   status: Dict[str, Optional[int]] = Field(default_factory=dict)
   errors: Dict[str, Optional[str]] = Field(default_factory=dict)
   parsed: Dict[str, RegionParse] = Field(default_factory=dict)
