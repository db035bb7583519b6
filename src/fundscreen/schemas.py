from __future__ import annotations

import math
import re
import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TICKER_RE = re.compile(r"^[A-Z0-9]{1,12}$")

SortMode = Literal["magic_formula", "ticker"]


def _normalize_ticker(v: str) -> str:
    tk = str(v).strip().upper()
    if not TICKER_RE.match(tk):
        raise ValueError("ticker must be 1-12 uppercase letters or digits")
    return tk


class StockIn(BaseModel):
    ticker: str
    name: str = Field(min_length=1)
    sector: Optional[str] = "Unknown"
    subsector: Optional[str] = None
    is_state_owned: bool = False

    @field_validator("ticker")
    @classmethod
    def _ticker(cls, v: str) -> str:
        return _normalize_ticker(v)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class FundamentalIn(BaseModel):
    ticker: str
    date: dt.date
    pl: Optional[float] = None
    roe: Optional[float] = None
    pvp: Optional[float] = None
    div_yield: Optional[float] = None
    net_profit: Optional[float] = None
    ebit_ev: Optional[float] = None
    roic: Optional[float] = None

    @field_validator("ticker")
    @classmethod
    def _ticker(cls, v: str) -> str:
        return _normalize_ticker(v)

    @field_validator("pl", "roe", "pvp", "div_yield", "net_profit", "ebit_ev", "roic")
    @classmethod
    def _finite(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and (math.isnan(v) or math.isinf(v)):
            raise ValueError("must be a finite number or null")
        return v


class StockOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticker: str
    name: str
    sector: Optional[str] = None
    subsector: Optional[str] = None
    is_state_owned: bool = False


class FundamentalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticker: str
    date: dt.date
    pl: Optional[float] = None
    roe: Optional[float] = None
    pvp: Optional[float] = None
    div_yield: Optional[float] = None
    net_profit: Optional[float] = None
    ebit_ev: Optional[float] = None
    roic: Optional[float] = None


class RankedStockOut(StockOut):
    latest: FundamentalOut
    magic_rank: Optional[int] = None


class StockDetailOut(BaseModel):
    stock: StockOut
    history: list[FundamentalOut]


class ScrapeSummary(BaseModel):
    message: str = "Scraping completed successfully"
    scraped: int
    stocks_created: int
    stocks_updated: int
    fundamentals_written: int
