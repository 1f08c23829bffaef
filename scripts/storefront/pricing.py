from __future__ import annotations

import math
from typing import Optional, Sequence

from storefront.models import RateRule

def pick_rate(rules: Sequence[RateRule], price: float) -> float:
   """
   Conversion rate for *price*: the first rule (in list order) whose
   [min, max) bracket holds it; max=None is unbounded. Overlapping brackets
   are resolved by order, not by width. With no match the last rule's rate
   applies, and an empty table converts 1:1.
   """
   for rule in rules:
      if price >= rule.min and (rule.max is None or price < rule.max):
         return rule.rate
   return rules[-1].rate if rules else 1.0

def round_up(value: float, step: Optional[float]) -> int:
   s = step or 50
   return int(math.ceil(value / s) * s)

def compute_display_price(store_price: float, rules: Sequence[RateRule], round_step: Optional[float]) -> int:
   price = max(0.0, float(store_price or 0))
   return max(0, round_up(price * pick_rate(rules, price), round_step))

def overlapping_rules(rules: Sequence[RateRule]) -> list[tuple[int, int]]:
   """Index pairs of brackets that overlap; such tables resolve by list order."""
   out = []
   for i, a in enumerate(rules):
      for j in range(i + 1, len(rules)):
         b = rules[j]
         a_hi = math.inf if a.max is None else a.max
         b_hi = math.inf if b.max is None else b.max
         if a.min < b_hi and b.min < a_hi:
            out.append((i, j))
   return out
