from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from fundscreen.models import Stock, Fundamental
from fundscreen.screen import FilterSpec, RankedStock, screen


@dataclass
class StockDetail:
    stock: Stock
    history: list[Fundamental]


def get_stock(db: Session, ticker: str) -> StockDetail | None:
    """Descriptor plus full history ascending by date, or None when unknown."""
    tk = str(ticker).strip().upper()
    stock = db.get(Stock, tk)
    if stock is None:
        return None

    history = db.execute(
        select(Fundamental)
        .where(Fundamental.ticker == tk)
        .order_by(Fundamental.date.asc(), Fundamental.id.asc())
    ).scalars().all()
    return StockDetail(stock=stock, history=list(history))


def latest_fundamentals(db: Session, spec: FilterSpec | None = None) -> list[RankedStock]:
    """
    Each matching descriptor joined to its most recent snapshot.

    The state-owned exclusion is pushed into SQL; text search is left to
    screen.matches_search, SQLite lower() folds ASCII only. Tickers without
    any snapshot are left out. Same-date rows cannot exist (unique key), the
    highest id wins otherwise.
    """
    spec = spec or FilterSpec()

    latest_date = (
        select(
            Fundamental.ticker.label("ticker"),
            func.max(Fundamental.date).label("date"),
        )
        .group_by(Fundamental.ticker)
        .subquery()
    )
    newest = (
        select(
            Fundamental.ticker.label("ticker"),
            func.max(Fundamental.id).label("id"),
        )
        .join(
            latest_date,
            and_(latest_date.c.ticker == Fundamental.ticker, latest_date.c.date == Fundamental.date),
        )
        .group_by(Fundamental.ticker)
        .subquery()
    )

    q = (
        select(Stock, Fundamental)
        .join(newest, newest.c.ticker == Stock.ticker)
        .join(Fundamental, Fundamental.id == newest.c.id)
    )

    if spec.exclude_state_owned:
        q = q.where(Stock.is_state_owned.is_(False))

    rows = db.execute(q.order_by(Stock.ticker)).all()
    return [RankedStock(stock=s, latest=f) for s, f in rows]


def get_stocks(db: Session, spec: FilterSpec | None = None) -> list[RankedStock]:
    spec = spec or FilterSpec()
    return screen(latest_fundamentals(db, spec), spec)
