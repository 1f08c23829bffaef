import json

import pytest

from storefront.admin import CatalogAdmin
from storefront.config import AppConfig
from storefront.storage import JsonStore


@pytest.fixture
def cfg(tmp_path):
   return AppConfig(data_dir=str(tmp_path / "data"), page_cache_db=None)


@pytest.fixture
def store(cfg):
   return JsonStore(cfg)


@pytest.fixture
def admin(store):
   return CatalogAdmin(store)


@pytest.fixture
def product_page():
   """Builds a product page the way the store renders it (meta tags, JSON-LD, Next.js data)."""

   def build(*, title=None, image=None, h1=None, price=None, currency="TRY", discount_text="",
             next_data=None, body="", ld_extra=None):
      head = []
      if title:
         head.append(f'<meta property="og:title" content="{title}">')
      if image:
         head.append(f'<meta property="og:image" content="{image}">')
      ld = {"@context": "https://schema.org", "@type": "Product"}
      if price is not None:
         ld["offers"] = {"@type": "Offer", "price": price, "priceCurrency": currency}
      ld.update(ld_extra or {})
      head.append(f'<script type="application/ld+json">{json.dumps(ld)}</script>')
      parts = [f"<html><head>{''.join(head)}</head><body>"]
      if h1:
         parts.append(f"<h1>{h1}</h1>")
      if discount_text:
         parts.append(f"<span>{discount_text}</span>")
      parts.append(body)
      if next_data is not None:
         parts.append(f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(next_data)}</script>')
      parts.append("</body></html>")
      return "".join(parts)

   return build
