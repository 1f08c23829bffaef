from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from storefront.adapters.base import FetcherConfig
from storefront.adapters.psn import PSNFetcher
from storefront.admin import CatalogAdmin
from storefront.config import AppConfig, load_config
from storefront.db import PageCache, make_session
from storefront.errors import StorefrontError
from storefront.query import CatalogQuery, catalog_meta, discount_dates, query_games
from storefront.records import build_record
from storefront.runner import import_product
from storefront.storage import JsonStore, read_json

log = logging.getLogger("storefront.cli")
console = Console()

def _print_json(data: Any) -> None:
   console.print_json(json.dumps(data, ensure_ascii=False))

# ---------- commands ----------

def open_page_cache(cfg: AppConfig, *, no_cache: bool = False) -> Optional[PageCache]:
   if not cfg.page_cache_db or no_cache:
      return None
   cache = PageCache(make_session(cfg.page_cache_db), ttl=cfg.page_cache_ttl)
   purged = cache.purge_expired()
   if purged:
      log.info("page cache: dropped %d expired pages", purged)
   return cache

async def _import(cfg: AppConfig, args) -> int:
   cache = open_page_cache(cfg, no_cache=args.no_cache)
   fetcher = PSNFetcher(config=FetcherConfig(rps=cfg.fetch_rps, timeout=cfg.fetch_timeout), cache=cache)
   try:
      with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                    TimeElapsedColumn(), transient=True) as progress:
         task_id = progress.add_task("fetching", total=None)
         async with fetcher as f:
            result = await import_product(args.url, f, cfg, progress=progress, task_id=task_id)
   finally:
      if cache is not None:
         cache.close()

   _print_json(result.dump())
   if not result.ok:
      log.error("primary region blocked, nothing to add")
      return 1
   if args.add:
      record = CatalogAdmin(JsonStore(cfg)).add_game(build_record(result))
      log.info("added %s as #%d", record.id, record.pop_rank)
   return 0

def _games(cfg: AppConfig, args) -> int:
   store = JsonStore(cfg)
   query = CatalogQuery(region=args.region, q=args.q, platform=args.platform,
                        until=args.until, sort=args.sort, page=args.page)
   page = query_games(store.load_games(), store.load_store(), query, per_page=cfg.per_page)
   if args.json:
      _print_json(page.dump())
      return 0
   table = Table(title=f"{page.region} page {page.page} ({page.total} total)")
   for col in ("#", "id", "name", "edition", "platform", "ru", "disc", "until", "store", "final"):
      table.add_column(col)
   for it in page.items:
      table.add_row(str(it.pop_rank), it.id, it.name, it.edition, it.platform, it.ru,
                    f"{it.disc_perc}%", it.discounted_until or "", f"{it.store_price:g}", str(it.final_price_rub))
   console.print(table)
   return 0

def _dates(cfg: AppConfig, args) -> int:
   _print_json({"region": args.region.upper(), "dates": discount_dates(JsonStore(cfg).load_games().items, args.region)})
   return 0

def _meta(cfg: AppConfig, args) -> int:
   store = JsonStore(cfg)
   _print_json(catalog_meta(store.load_games(), store.load_store()))
   return 0

def _admin(cfg: AppConfig, args) -> int:
   admin = CatalogAdmin(JsonStore(cfg))
   if args.action == "list":
      _print_json(admin.list_games())
   elif args.action == "add":
      record = admin.add_game(read_json(args.file))
      _print_json({"ok": True, "id": record.id, "popRank": record.pop_rank})
   elif args.action == "delete":
      _print_json({"ok": True, "count": admin.delete_game(args.id)})
   elif args.action == "delete-date":
      _print_json({"ok": True, **admin.delete_by_discount_date(args.date)})
   elif args.action == "clear":
      admin.delete_all()
      _print_json({"ok": True})
   elif args.action == "rates":
      if args.file:
         rules = admin.replace_rates(args.region, read_json(args.file))
      else:
         rules = admin.get_rates(args.region)
      _print_json({"region": args.region.upper(), "rules": [r.dump() for r in rules]})
   elif args.action == "settings":
      if args.round_step is None and args.whatsapp is None and args.default_until is None:
         settings = admin.get_settings()
      else:
         until: Any = ...
         if args.default_until is not None:
            until = None if args.default_until.lower() in {"", "none"} else args.default_until
         settings = admin.update_settings(round_step=args.round_step, whatsapp_link=args.whatsapp,
                                          default_discount_until=until)
      _print_json(settings.dump())
   return 0

# ---------- parser ----------

def build_parser() -> argparse.ArgumentParser:
   ap = argparse.ArgumentParser(prog="storefront", description="PlayStation Store TR/UA catalog tools.")
   ap.add_argument("--env-file", type=str, default=".env", help="Path to a .env file")
   ap.add_argument("--log-level", type=str, default="INFO", help="Logging level (e.g., INFO, DEBUG)")
   sub = ap.add_subparsers(dest="command", required=True)

   p = sub.add_parser("import", help="Fetch a product page for every region and parse it")
   p.add_argument("url", help="store.playstation.com product URL")
   p.add_argument("--add", action="store_true", help="Insert the parsed record into the catalog")
   p.add_argument("--no-cache", action="store_true", help="Bypass the page cache")

   p = sub.add_parser("games", help="Query the catalog")
   p.add_argument("--region", default="TR")
   p.add_argument("--sort", default="pop", choices=["pop", "price_asc", "price_desc"])
   p.add_argument("--page", type=int, default=1)
   p.add_argument("-q", default="", help="Search text")
   p.add_argument("--platform", default="", help="PS4 or PS5")
   p.add_argument("--until", default="", help="Discount end date (YYYY-MM-DD)")
   p.add_argument("--json", action="store_true", help="Print the raw response")

   p = sub.add_parser("dates", help="Discount end dates with counts")
   p.add_argument("--region", default="TR")

   sub.add_parser("meta", help="Settings and catalog summary")

   p = sub.add_parser("admin", help="Catalog administration")
   actions = p.add_subparsers(dest="action", required=True)
   actions.add_parser("list")
   a = actions.add_parser("add")
   a.add_argument("file", help="JSON file with the record")
   a = actions.add_parser("delete")
   a.add_argument("id")
   a = actions.add_parser("delete-date")
   a.add_argument("date", help="YYYY-MM-DD or 'none'")
   actions.add_parser("clear")
   a = actions.add_parser("rates")
   a.add_argument("region")
   a.add_argument("file", nargs="?", help="JSON list of {min, max, rate}; omit to show")
   a = actions.add_parser("settings")
   a.add_argument("--round-step", type=int, choices=[50, 100])
   a.add_argument("--whatsapp")
   a.add_argument("--default-until", help="YYYY-MM-DD or 'none'")
   return ap

COMMANDS = {"games": _games, "dates": _dates, "meta": _meta, "admin": _admin}

def main(argv: Optional[list] = None) -> int:
   args = build_parser().parse_args(argv)
   logging.basicConfig(
      level=getattr(logging, args.log_level.upper(), logging.INFO),
      format="%(message)s",
      datefmt="[%X]",
      handlers=[RichHandler(rich_tracebacks=True, markup=False, console=Console(stderr=True))],
   )
   cfg = load_config(args.env_file)
   try:
      if args.command == "import":
         return asyncio.run(_import(cfg, args))
      return COMMANDS[args.command](cfg, args)
   except StorefrontError as exc:
      _print_json(exc.as_dict())
      log.error("%s", exc)
      return 2

def run() -> None:
   sys.exit(main())

if __name__ == "__main__":
   run()
