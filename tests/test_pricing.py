import pytest

from storefront.models import RateRule
from storefront.pricing import compute_display_price, overlapping_rules, pick_rate, round_up

TIERS = [
   RateRule(min=0, max=1000, rate=3.0),
   RateRule(min=1000, max=None, rate=2.5),
]


def test_pick_rate_brackets():
   assert pick_rate(TIERS, 0) == 3.0
   assert pick_rate(TIERS, 999.99) == 3.0
   assert pick_rate(TIERS, 1000) == 2.5
   assert pick_rate(TIERS, 10**9) == 2.5


def test_pick_rate_fallbacks():
   rules = [RateRule(min=100, max=200, rate=2.0), RateRule(min=200, max=300, rate=4.0)]
   assert pick_rate(rules, 50) == 4.0
   assert pick_rate([], 50) == 1.0


def test_first_matching_rule_wins_on_overlap():
   rules = [RateRule(min=0, max=None, rate=2.0), RateRule(min=0, max=100, rate=5.0)]
   assert pick_rate(rules, 10) == 2.0
   assert overlapping_rules(rules) == [(0, 1)]
   assert overlapping_rules(TIERS) == []


def test_compute_display_price():
   assert compute_display_price(500, TIERS, 50) == 1500
   assert compute_display_price(999.99, TIERS, 100) == 3000
   assert compute_display_price(1000, TIERS, 50) == 2500
   assert compute_display_price(101, [], 50) == 150
   assert compute_display_price(0, TIERS, 50) == 0


def test_round_up_is_a_plain_ceiling():
   assert round_up(1, None) == 50
   assert round_up(1100, 50) == 1100
   assert round_up(1100.0000000000002, 50) == 1150
   # 1500 * 1.1 is 1650.0000000000002 in floating point
   assert compute_display_price(1500, [RateRule(min=0, rate=1.1)], 50) == 1700


@pytest.mark.parametrize("step", [50, 100])
def test_result_is_non_negative_multiple_and_monotone(step):
   rules = [RateRule(min=0, max=None, rate=2.37)]
   previous = -1
   price = 0.0
   while price < 5000:
      value = compute_display_price(price, rules, step)
      assert value >= 0
      assert value % step == 0
      assert value >= previous
      previous = value
      price += 7.3


def test_compute_is_deterministic():
   assert compute_display_price(1234.56, TIERS, 50) == compute_display_price(1234.56, TIERS, 50)


def test_rate_rule_validation():
   assert RateRule.model_validate({"min": "10", "max": "", "rate": "2.5"}).max is None
   with pytest.raises(ValueError):
      RateRule.model_validate({"min": "abc", "rate": 1})
   with pytest.raises(ValueError):
      RateRule.model_validate({"min": 0, "rate": float("nan")})
