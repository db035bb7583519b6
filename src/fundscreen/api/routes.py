import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import EmptyScrapeError, FetchError, StockExistsError
from ..etl import run_etl
from ..etl.load import create_stock, upsert_fundamental
from ..models import Stock
from ..queries import get_stock, get_stocks
from ..schemas import (
    FundamentalIn,
    FundamentalOut,
    RankedStockOut,
    ScrapeSummary,
    SortMode,
    StockDetailOut,
    StockIn,
    StockOut,
)
from ..screen import FilterSpec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stocks"])


@router.get("/stocks", response_model=list[RankedStockOut])
def list_stocks(
    search: Optional[str] = Query(None, description="substring of ticker or name"),
    max_pl: Optional[float] = Query(None),
    min_roe: Optional[float] = Query(None),
    max_pvp: Optional[float] = Query(None),
    min_div_yield: Optional[float] = Query(None),
    exclude_state_owned: bool = Query(False),
    sort_by: SortMode = Query("ticker", description="ticker|magic_formula"),
    db: Session = Depends(get_db),
):
    """
    Latest snapshot per ticker, filtered, sorted by ticker or ranked by the
    Magic Formula (magic_rank set only in that mode).
    """
    spec = FilterSpec(
        search=search or None,
        max_pl=max_pl,
        min_roe=min_roe,
        max_pvp=max_pvp,
        min_div_yield=min_div_yield,
        exclude_state_owned=exclude_state_owned,
        sort_by=sort_by,
    )
    rows = get_stocks(db, spec)
    return [
        RankedStockOut(
            **StockOut.model_validate(r.stock).model_dump(),
            latest=FundamentalOut.model_validate(r.latest),
            magic_rank=r.magic_rank,
        )
        for r in rows
    ]


@router.get("/stocks/{ticker}", response_model=StockDetailOut)
def get_stock_detail(ticker: str, db: Session = Depends(get_db)):
    detail = get_stock(db, ticker)
    if detail is None:
        raise HTTPException(status_code=404, detail="Stock not found")
    return StockDetailOut(
        stock=StockOut.model_validate(detail.stock),
        history=[FundamentalOut.model_validate(f) for f in detail.history],
    )


@router.post("/stocks", response_model=StockOut, status_code=201)
def create_stock_entry(payload: StockIn, db: Session = Depends(get_db)):
    try:
        stock = create_stock(db, payload)
    except StockExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return StockOut.model_validate(stock)


@router.post("/fundamentals", response_model=FundamentalOut, status_code=201)
def add_fundamental(payload: FundamentalIn, db: Session = Depends(get_db)):
    """Manual snapshot entry; same (ticker, date) overwrites."""
    if db.get(Stock, payload.ticker) is None:
        raise HTTPException(status_code=404, detail="Stock not found")
    return FundamentalOut.model_validate(upsert_fundamental(db, payload))


@router.post("/scrape", response_model=ScrapeSummary)
def scrape(db: Session = Depends(get_db)):
    """Fetch resultado.php and upsert every row for today."""
    try:
        return run_etl.run(db)
    except EmptyScrapeError as e:
        logger.error(f"Scraping failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except FetchError as e:
        logger.error(f"Scraping failed: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to scrape data: {e}")
