"""Tests for the scrape -> classify -> upsert pipeline."""

from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest

from fundscreen.errors import EmptyScrapeError, FetchError
from fundscreen.etl import run_etl
from fundscreen.etl.sources_fundamentus import ScrapedStock, parse_resultado
from fundscreen.models import Stock
from fundscreen.queries import get_stock

AS_OF = date(2025, 1, 15)


def scraped(ticker, name=None, **metrics):
    return ScrapedStock(ticker=ticker, name=name or ticker, sector="Unknown", **metrics)


class TestRun:
    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_counts_and_persists(self, mock_scrape, db):
        mock_scrape.return_value = [
            scraped("WEGE3", "Weg S.A.", pl=25.5, ev_ebit=20.0, roic=18.0),
            scraped("PETR4", "Petróleo Brasileiro S.A. - Petrobras", pl=3.9, ev_ebit=0.0),
        ]

        summary = run_etl.run(db, as_of=AS_OF)

        assert summary.scraped == 2
        assert summary.stocks_created == 2
        assert summary.stocks_updated == 0
        assert summary.fundamentals_written == 2

        wege = get_stock(db, "WEGE3")
        assert wege.history[0].date == AS_OF
        assert wege.history[0].pl == 25.5
        assert wege.history[0].ebit_ev == pytest.approx(0.05)
        assert wege.stock.is_state_owned is False

        petr = get_stock(db, "PETR4")
        assert petr.stock.is_state_owned is True
        assert petr.history[0].ebit_ev is None

    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_rescrape_same_day_updates(self, mock_scrape, db):
        mock_scrape.return_value = [scraped("WEGE3", pl=25.5)]
        run_etl.run(db, as_of=AS_OF)

        mock_scrape.return_value = [scraped("WEGE3", "Weg S.A.", pl=26.0)]
        summary = run_etl.run(db, as_of=AS_OF)

        assert summary.stocks_created == 0
        assert summary.stocks_updated == 1
        assert summary.fundamentals_written == 1
        detail = get_stock(db, "WEGE3")
        assert detail.stock.name == "Weg S.A."
        assert len(detail.history) == 1
        assert detail.history[0].pl == 26.0

    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_zero_rows_is_an_error(self, mock_scrape, db):
        mock_scrape.return_value = []

        with pytest.raises(EmptyScrapeError, match="layout"):
            run_etl.run(db, as_of=AS_OF)

    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_fetch_error_propagates(self, mock_scrape, db):
        mock_scrape.side_effect = FetchError("Failed to fetch data: timeout")

        with pytest.raises(FetchError, match="timeout"):
            run_etl.run(db, as_of=AS_OF)

    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_parse_crash_wrapped_as_fetch_error(self, mock_scrape, db):
        mock_scrape.side_effect = ValueError("bad markup")

        with pytest.raises(FetchError, match="bad markup"):
            run_etl.run(db, as_of=AS_OF)

    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_one_bad_ticker_does_not_abort_batch(self, mock_scrape, db):
        # "BAD-1" fails ticker validation and is skipped
        mock_scrape.return_value = [scraped("BAD-1"), scraped("VALE3", "Vale S.A.")]

        summary = run_etl.run(db, as_of=AS_OF)

        assert summary.scraped == 2
        assert summary.stocks_created == 1
        assert summary.fundamentals_written == 1
        assert db.get(Stock, "VALE3") is not None

    @patch("fundscreen.etl.run_etl.upsert_fundamental")
    @patch("fundscreen.etl.run_etl.scrape_fundamentus")
    def test_failed_upsert_excluded_from_counts(self, mock_scrape, mock_upsert, db):
        mock_scrape.return_value = [scraped("WEGE3"), scraped("VALE3")]
        mock_upsert.side_effect = [RuntimeError("db down"), None]

        summary = run_etl.run(db, as_of=AS_OF)

        assert summary.fundamentals_written == 1
        assert summary.stocks_created == 1


def test_extractor_to_store_end_to_end(db, make_row, make_page):
    html = make_page([make_row("WEGE3", title="WEG S.A.", c2="25,50", c10="12,50"), make_row("")])

    summary = run_etl.load_scraped(db, parse_resultado(html), AS_OF)

    assert summary.scraped == 1
    detail = get_stock(db, "WEGE3")
    assert detail.stock.name == "WEG S.A."
    assert detail.history[0].pl == 25.5
    assert detail.history[0].ebit_ev == pytest.approx(0.08)
