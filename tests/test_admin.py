import logging

import pytest

from storefront.errors import DuplicateRecord, RecordNotFound, ValidationFailed


def _payload(gid, name="Game", **regions):
   return {"id": gid, "name": name, "regions": regions}


def test_add_game_fills_defaults(admin, store):
   record = admin.add_game(_payload("EP0001", "First", TR={"salePrice": 100, "ru": "Russian voice"}))
   assert record.pop_rank == 1
   assert record.platform == "PS4 / PS5"
   assert record.regions["TR"].ru == "voice"
   assert record.regions["UA"].sale_price == 0
   saved = store.load_games()
   assert [g.id for g in saved.items] == ["EP0001"]
   assert saved.updated_at.endswith("Z")


def test_add_game_applies_default_discount_date(admin):
   admin.update_settings(default_discount_until="2026-11-01")
   record = admin.add_game(_payload("EP1", TR={"discountedUntil": "2026-12-31"}))
   assert record.regions["TR"].discounted_until == "2026-12-31"
   assert record.regions["UA"].discounted_until == "2026-11-01"


def test_add_game_rejections(admin):
   with pytest.raises(ValidationFailed) as exc:
      admin.add_game({"name": "No id"})
   assert exc.value.code == "id_and_name_required"
   with pytest.raises(ValidationFailed) as exc:
      admin.add_game(_payload("EP2", TR={"discPerc": 150}))
   assert exc.value.code == "bad_region"
   admin.add_game(_payload("EP3"))
   with pytest.raises(DuplicateRecord) as exc:
      admin.add_game(_payload("EP3", "Again"))
   assert exc.value.as_dict() == {"ok": False, "error": "already_exists", "detail": "EP3"}


def test_new_records_rank_last(admin):
   for i in range(3):
      admin.add_game(_payload(f"EP{i}"))
   assert [g["popRank"] for g in admin.list_games()["items"]] == [1, 2, 3]


def test_delete_game_renumbers(admin, store):
   for i in range(3):
      admin.add_game(_payload(f"EP{i}"))
   assert admin.delete_game("EP0") == 2
   items = store.load_games().items
   assert [(g.id, g.pop_rank) for g in items] == [("EP1", 1), ("EP2", 2)]
   with pytest.raises(RecordNotFound):
      admin.delete_game("EP0")
   with pytest.raises(ValidationFailed) as exc:
      admin.delete_game("  ")
   assert exc.value.code == "id_required"


def test_delete_by_discount_date(admin, store):
   admin.add_game(_payload("A", TR={"discountedUntil": "2026-11-01"}))
   admin.add_game(_payload("B", UA={"discountedUntil": "2026-11-01"}))
   admin.add_game(_payload("C", TR={"discountedUntil": "2026-11-02"}, UA={"discountedUntil": "2026-11-01"}))
   admin.add_game(_payload("D"))

   assert admin.delete_by_discount_date("2026-11-01") == {"removed": 2, "count": 2}
   assert [(g.id, g.pop_rank) for g in store.load_games().items] == [("C", 1), ("D", 2)]
   assert admin.delete_by_discount_date("none") == {"removed": 1, "count": 1}
   assert admin.list_games()["items"][0]["discountedUntil"] == "2026-11-02"


def test_delete_by_discount_date_validation(admin):
   with pytest.raises(ValidationFailed) as exc:
      admin.delete_by_discount_date("")
   assert exc.value.code == "date_required"
   with pytest.raises(ValidationFailed) as exc:
      admin.delete_by_discount_date("01.11.2026")
   assert exc.value.code == "bad_date"


def test_delete_all(admin, store):
   admin.add_game(_payload("A"))
   admin.delete_all()
   assert store.load_games().items == []


def test_replace_rates(admin, caplog):
   with caplog.at_level(logging.WARNING, logger="storefront.admin"):
      rules = admin.replace_rates("tr", [
         {"min": 0, "max": 500, "rate": 3},
         {"min": 400, "max": "", "rate": 2.5},
      ])
   assert [r.max for r in rules] == [500, None]
   assert admin.get_rates("TR")[1].rate == 2.5
   assert admin.get_rates("UA") == []
   assert "overlap" in caplog.text


def test_replace_rates_rejects_whole_table(admin):
   admin.replace_rates("TR", [{"min": 0, "rate": 2}])
   with pytest.raises(ValidationFailed) as exc:
      admin.replace_rates("TR", [{"min": 0, "rate": 3}, {"min": "x", "rate": 1}])
   assert exc.value.code == "bad_rule"
   assert [r.rate for r in admin.get_rates("TR")] == [2]


def test_update_settings(admin):
   settings = admin.update_settings(round_step=100, whatsapp_link="https://wa.me/1")
   assert settings.round_step == 100
   assert admin.get_settings().whatsapp_link == "https://wa.me/1"
   assert admin.update_settings(round_step="75").round_step == 50
   admin.update_settings(default_discount_until="2026-11-01")
   assert admin.update_settings(whatsapp_link="x").default_discount_until == "2026-11-01"
   assert admin.update_settings(default_discount_until=None).default_discount_until is None
