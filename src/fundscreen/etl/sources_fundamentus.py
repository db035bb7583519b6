from __future__ import annotations

import logging
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup

from fundscreen.config import settings
from fundscreen.errors import FetchError
from fundscreen.utils.numbers import parse_br_number

logger = logging.getLogger(__name__)


# resultado.php layout (v1). Cells are read by position, header labels are
# not unique enough to key on. Edit this map when the page changes.
#  0 Papel            1 Cotação          2 P/L              3 P/VP
#  4 PSR              5 Div.Yield        6 P/Ativo          7 P/Cap.Giro
#  8 P/EBIT           9 P/Ativ Circ.Liq 10 EV/EBIT         11 EV/EBITDA
# 12 Mrg Ebit        13 Mrg. Líq.       14 Liq. Corr.      15 ROIC
# 16 ROE             17 Liq.2meses      18 Patrim. Líq     19 Dív.Brut/ Patrim.
# 20 Cresc. Rec.5a
LAYOUT_VERSION = 1
EXPECTED_COLUMNS = 21
TICKER_COLUMN = 0
COLUMNS: dict[str, int] = {
    "pl": 2,
    "pvp": 3,
    "div_yield": 5,
    "ev_ebit": 10,
    "net_profit": 13,  # Mrg. Líq. used as a stand-in for net profit
    "roic": 15,
    "roe": 16,
    "liquidity": 17,
}
MIN_CELLS = max(COLUMNS.values()) + 1


@dataclass
class ScrapedStock:
    ticker: str
    name: str
    sector: str
    pl: float | None = None
    pvp: float | None = None
    roe: float | None = None
    roic: float | None = None
    div_yield: float | None = None
    ev_ebit: float | None = None
    net_profit: float | None = None
    liquidity: float | None = None


def _create_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "User-Agent": settings.USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    })
    return session


def fetch_resultado_html(session: requests.Session | None = None) -> str:
    """
    Download the results page.

    Raises:
        FetchError: network failure or non-2xx status, with the cause message
    """
    session = session or _create_session()
    url = settings.FUNDAMENTUS_URL
    logger.info(f"Fetching stock list from {url}")
    try:
        response = session.get(url, timeout=settings.HTTP_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Request failed: {e}")
        raise FetchError(f"Failed to fetch data: {e}") from e

    # the page does not always declare its charset
    if not response.encoding or response.encoding.lower() == "iso-8859-1":
        response.encoding = response.apparent_encoding
    return response.text


def _cell_text(cells, idx: int) -> str | None:
    if idx >= len(cells):
        return None
    return cells[idx].get_text(strip=True)


def _parse_row(cells) -> ScrapedStock | None:
    ticker = (_cell_text(cells, TICKER_COLUMN) or "").strip()
    if not ticker:
        return None

    name = ticker
    link = cells[TICKER_COLUMN].find("a")
    if link is not None and link.get("title"):
        name = link["title"].strip() or ticker

    values = {field: parse_br_number(_cell_text(cells, idx)) for field, idx in COLUMNS.items()}
    return ScrapedStock(ticker=ticker, name=name, sector="Unknown", **values)


def parse_resultado(page: str | BeautifulSoup) -> list[ScrapedStock]:
    """
    Extract one ScrapedStock per data row of table#resultado.

    - rows without a ticker are skipped
    - a row raising during extraction is logged and skipped
    - short rows keep the fields they have, the rest stay None
    - no table -> []
    """
    soup = page if isinstance(page, BeautifulSoup) else BeautifulSoup(page, "html.parser")
    table = soup.find("table", {"id": "resultado"})
    if table is None:
        logger.warning("Table 'resultado' not found on page")
        return []

    headers = [th.get_text(strip=True) for th in table.find_all("th")]
    if headers and len(headers) != EXPECTED_COLUMNS:
        logger.warning(
            f"Expected {EXPECTED_COLUMNS} columns (layout v{LAYOUT_VERSION}), found {len(headers)}; "
            "column mapping may be misaligned"
        )

    body = table.find("tbody") or table
    stocks: list[ScrapedStock] = []
    for row in body.find_all("tr"):
        cells = row.find_all("td")
        if not cells:
            continue
        try:
            if len(cells) < MIN_CELLS:
                logger.warning(f"Row has {len(cells)} cells, expected at least {MIN_CELLS}")
            stock = _parse_row(cells)
        except Exception as e:
            logger.warning(f"Error parsing row: {e}")
            continue
        if stock is not None:
            stocks.append(stock)

    logger.info(f"Successfully parsed {len(stocks)} stocks")
    return stocks


def scrape_fundamentus(session: requests.Session | None = None) -> list[ScrapedStock]:
    html = fetch_resultado_html(session)
    return parse_resultado(html)
