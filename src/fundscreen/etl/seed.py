from __future__ import annotations

import logging
import random
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fundscreen.models import Stock
from fundscreen.schemas import StockIn, FundamentalIn
from fundscreen.etl.load import create_stock, upsert_fundamental

logger = logging.getLogger(__name__)

SEED_STOCKS = [
    StockIn(ticker="WEGE3", name="Weg S.A.", sector="Industrial", is_state_owned=False),
    StockIn(ticker="VALE3", name="Vale S.A.", sector="Mining", is_state_owned=False),
    StockIn(ticker="PETR4", name="Petrobras", sector="Oil & Gas", is_state_owned=True),
    StockIn(ticker="BBAS3", name="Banco do Brasil", sector="Banking", is_state_owned=True),
    StockIn(ticker="EGIE3", name="Engie Brasil", sector="Utilities", is_state_owned=False),
]
SEED_YEARS = (2022, 2023, 2024)


def _quarterly_history(ticker: str, rng: random.Random) -> list[FundamentalIn]:
    net_profit = rng.random() * 1000 + 500
    roe = 15.0
    out = []
    for year in SEED_YEARS:
        for q in (1, 2, 3, 4):
            if ticker == "WEGE3":
                net_profit *= 1.05  # steady grower
                roe = 20 + rng.random() * 2
            elif ticker == "VALE3":
                net_profit += (rng.random() - 0.5) * 500  # volatile
                roe = 25 + rng.random() * 10

            out.append(FundamentalIn(
                ticker=ticker,
                date=date(year, q * 3, 1),
                pl=25.0 if ticker == "WEGE3" else 5.0,
                roe=roe,
                pvp=5.0 if ticker == "WEGE3" else 1.2,
                div_yield=15.0 if ticker == "PETR4" else (2.0 if ticker == "WEGE3" else 8.0),
                net_profit=net_profit,
                ebit_ev=0.05 if ticker == "WEGE3" else 0.20,
                roic=roe - 2,
            ))
    return out


def seed_data(db: Session, seed: int = 42) -> int:
    """
    Populate a demo universe when no stock is stored yet.

    Returns the number of snapshots written (0 when the store was not empty).
    """
    if db.execute(select(func.count()).select_from(Stock)).scalar_one() > 0:
        return 0

    rng = random.Random(seed)
    written = 0
    for stock in SEED_STOCKS:
        create_stock(db, stock)
        for row in _quarterly_history(stock.ticker, rng):
            upsert_fundamental(db, row)
            written += 1

    logger.info(f"Seeded {len(SEED_STOCKS)} stocks with {written} snapshots")
    return written


if __name__ == "__main__":
    from fundscreen.config import configure_logging
    from fundscreen.db import SessionLocal, init_db

    configure_logging()
    init_db()
    db = SessionLocal()
    try:
        print({"fundamentals_written": seed_data(db)})
    finally:
        db.close()
