from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import StockExistsError
from ..models import Stock, Fundamental, FUNDAMENTAL_FIELDS
from ..schemas import StockIn, FundamentalIn

logger = logging.getLogger(__name__)

STOCK_FIELDS = ("name", "sector", "subsector", "is_state_owned")


def _dialect_insert(db: Session):
    """INSERT construct supporting ON CONFLICT for the bound dialect, or None."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


def upsert_stock(db: Session, data: StockIn) -> tuple[Stock, bool]:
    """
    Insert the descriptor or update name/sector/subsector/flag in place.

    Returns (stock, created). The ticker key is never changed. A missing
    subsector leaves the stored one alone; the list page never carries it.
    """
    values = data.model_dump()
    fields = [k for k in STOCK_FIELDS if not (k == "subsector" and values[k] is None)]
    created = db.get(Stock, data.ticker) is None

    insert = _dialect_insert(db)
    if insert is not None:
        stmt = insert(Stock).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Stock.ticker],
            set_={k: stmt.excluded[k] for k in fields},
        )
        db.execute(stmt)
    else:
        obj = db.get(Stock, data.ticker)
        if obj is None:
            db.add(Stock(**values))
        else:
            for k in fields:
                setattr(obj, k, values[k])
    db.commit()

    return db.get(Stock, data.ticker, populate_existing=True), created


def upsert_fundamental(db: Session, data: FundamentalIn) -> Fundamental:
    """
    Insert the (ticker, date) snapshot or overwrite all of its numeric fields.

    Same snapshot twice -> one row. Concurrent writers on the same key:
    last write wins, no uniqueness error.
    """
    values = data.model_dump()

    insert = _dialect_insert(db)
    if insert is not None:
        stmt = insert(Fundamental).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Fundamental.ticker, Fundamental.date],
            set_={k: stmt.excluded[k] for k in FUNDAMENTAL_FIELDS},
        )
        db.execute(stmt)
    else:
        obj = db.execute(
            select(Fundamental).where(Fundamental.ticker == data.ticker, Fundamental.date == data.date)
        ).scalar_one_or_none()
        if obj is None:
            db.add(Fundamental(**values))
        else:
            for k in FUNDAMENTAL_FIELDS:
                setattr(obj, k, values[k])
    db.commit()

    return db.execute(
        select(Fundamental)
        .where(Fundamental.ticker == data.ticker, Fundamental.date == data.date)
        .execution_options(populate_existing=True)
    ).scalar_one()


def create_stock(db: Session, data: StockIn) -> Stock:
    """Plain insert for manual entry; an existing ticker raises StockExistsError."""
    if db.get(Stock, data.ticker) is not None:
        raise StockExistsError(data.ticker)

    obj = Stock(**data.model_dump())
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise StockExistsError(data.ticker) from e
    return obj
