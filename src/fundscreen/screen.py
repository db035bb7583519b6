"""
Filter & rank engine over (descriptor, latest snapshot) pairs.

Filters are AND-combined; a missing metric never satisfies a bound on that
metric. Two sort modes:

- ``ticker``: ascending ticker symbol
- ``magic_formula``: Greenblatt sum of ranks. ROIC and EBIT/EV are each
  ranked descending (missing -> 0), rank 1 is best, ties keep input order.
  The composite (ROIC rank + EBIT/EV rank) orders the result ascending,
  stable on input order.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional

import pandas as pd

from fundscreen.models import Stock, Fundamental

SORT_MODES = ("magic_formula", "ticker")


@dataclass(frozen=True)
class FilterSpec:
    search: Optional[str] = None
    max_pl: Optional[float] = None
    min_roe: Optional[float] = None
    max_pvp: Optional[float] = None
    min_div_yield: Optional[float] = None
    exclude_state_owned: bool = False
    sort_by: str = "ticker"

    def __post_init__(self):
        if self.sort_by not in SORT_MODES:
            raise ValueError(f"sort_by must be one of {SORT_MODES}, got {self.sort_by!r}")


@dataclass
class RankedStock:
    stock: Stock
    latest: Fundamental
    magic_rank: Optional[int] = None


def _above(value: Optional[float], limit: Optional[float]) -> bool:
    """True when a max-bound filter drops the value."""
    return limit is not None and (value is None or value > limit)


def _below(value: Optional[float], limit: Optional[float]) -> bool:
    """True when a min-bound filter drops the value."""
    return limit is not None and (value is None or value < limit)


def matches_search(stock: Stock, search: Optional[str]) -> bool:
    if not search:
        return True
    needle = search.casefold()
    return needle in (stock.ticker or "").casefold() or needle in (stock.name or "").casefold()


def apply_filters(rows: Iterable[RankedStock], spec: FilterSpec) -> list[RankedStock]:
    out = []
    for r in rows:
        s, f = r.stock, r.latest

        if not matches_search(s, spec.search):
            continue
        if spec.exclude_state_owned and s.is_state_owned:
            continue
        if _above(f.pl, spec.max_pl):
            continue
        if _below(f.roe, spec.min_roe):
            continue
        if _above(f.pvp, spec.max_pvp):
            continue
        if _below(f.div_yield, spec.min_div_yield):
            continue

        out.append(r)
    return out


def rank_magic_formula(rows: list[RankedStock]) -> list[RankedStock]:
    """Set magic_rank on each row and return them ordered by it."""
    if not rows:
        return []

    df = pd.DataFrame(
        {
            "roic": [r.latest.roic for r in rows],
            "ebit_ev": [r.latest.ebit_ev for r in rows],
        },
        dtype="float64",
    )
    # method="first": equal values ranked by position, i.e. a stable sort
    roic_rank = df["roic"].fillna(0).rank(ascending=False, method="first")
    ebit_rank = df["ebit_ev"].fillna(0).rank(ascending=False, method="first")
    composite = (roic_rank + ebit_rank).astype(int)

    ranked = []
    for idx in composite.sort_values(kind="stable").index:
        ranked.append(replace(rows[idx], magic_rank=int(composite[idx])))
    return ranked


def sort_rows(rows: list[RankedStock], sort_by: str) -> list[RankedStock]:
    if sort_by == "magic_formula":
        return rank_magic_formula(rows)
    return sorted(rows, key=lambda r: r.stock.ticker)


def screen(rows: Iterable[RankedStock], spec: FilterSpec) -> list[RankedStock]:
    return sort_rows(apply_filters(rows, spec), spec.sort_by)
