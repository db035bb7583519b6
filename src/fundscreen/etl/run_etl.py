from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from fundscreen.db import SessionLocal, init_db
from fundscreen.config import configure_logging
from fundscreen.errors import EmptyScrapeError, FetchError

from fundscreen.etl.classify import is_state_owned
from fundscreen.etl.sources_fundamentus import ScrapedStock, scrape_fundamentus
from fundscreen.etl.load import upsert_stock, upsert_fundamental
from fundscreen.schemas import StockIn, FundamentalIn, ScrapeSummary
from fundscreen.utils.numbers import invert_or_none

logger = logging.getLogger(__name__)


def to_stock_in(scraped: ScrapedStock) -> StockIn:
    return StockIn(
        ticker=scraped.ticker,
        name=scraped.name,
        sector=scraped.sector or "Unknown",
        # no subsector on the list page, upsert_stock keeps the stored one
        is_state_owned=is_state_owned(scraped.name, scraped.ticker),
    )


def to_fundamental_in(scraped: ScrapedStock, as_of: date) -> FundamentalIn:
    return FundamentalIn(
        ticker=scraped.ticker,
        date=as_of,
        pl=scraped.pl,
        roe=scraped.roe,
        pvp=scraped.pvp,
        div_yield=scraped.div_yield,
        net_profit=scraped.net_profit,
        # the page publishes EV/EBIT; earnings yield is stored
        ebit_ev=invert_or_none(scraped.ev_ebit),
        roic=scraped.roic,
    )


def load_scraped(db: Session, scraped_stocks: list[ScrapedStock], as_of: date) -> ScrapeSummary:
    """
    Classify and upsert every scraped record.

    A ticker that fails is rolled back, logged and left out of the counts;
    the rest of the batch goes on.
    """
    created = updated = written = 0

    for scraped in scraped_stocks:
        try:
            _, was_created = upsert_stock(db, to_stock_in(scraped))
            upsert_fundamental(db, to_fundamental_in(scraped, as_of))
        except Exception:
            db.rollback()
            logger.exception(f"Error processing stock {scraped.ticker}")
            continue

        if was_created:
            created += 1
        else:
            updated += 1
        written += 1

    logger.info(f"Scrape completed: {len(scraped_stocks)} stocks processed, {written} snapshots written")
    return ScrapeSummary(
        scraped=len(scraped_stocks),
        stocks_created=created,
        stocks_updated=updated,
        fundamentals_written=written,
    )


def run(db: Session | None = None, as_of: date | None = None) -> ScrapeSummary:
    """
    1) fetch resultado.php and extract rows
    2) classify state-owned
    3) upsert stocks / fundamentals for as_of (default: today)

    Raises:
        FetchError: the page could not be fetched or parsed
        EmptyScrapeError: no row extracted
    """
    as_of = as_of or date.today()
    logger.info("Starting scrape process...")

    try:
        scraped_stocks = scrape_fundamentus()
    except FetchError:
        raise
    except Exception as e:
        logger.error(f"Scraping failed: {e}")
        raise FetchError(f"Failed to parse page: {e}") from e

    if not scraped_stocks:
        raise EmptyScrapeError("No stocks found. The source layout likely changed.")

    own_session = db is None
    db = db or SessionLocal()
    try:
        return load_scraped(db, scraped_stocks, as_of)
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    # as-of date, today when omitted: python -m fundscreen.etl.run_etl 2025-12-29
    import sys
    if len(sys.argv) > 2:
        raise SystemExit("Usage: python -m fundscreen.etl.run_etl [YYYY-MM-DD]")

    configure_logging()
    init_db()
    as_of = date.fromisoformat(sys.argv[1]) if len(sys.argv) == 2 else None
    print(run(as_of=as_of).model_dump())
