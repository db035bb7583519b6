"""Tests for the resultado.php table extractor (network mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from fundscreen.errors import FetchError
from fundscreen.etl import sources_fundamentus
from fundscreen.etl.sources_fundamentus import (
    COLUMNS,
    fetch_resultado_html,
    parse_resultado,
    scrape_fundamentus,
)


class TestParseResultado:
    def test_empty_ticker_row_is_skipped(self, make_row, make_page):
        html = make_page([
            make_row("WEGE3", c2="25,50"),
            make_row("", c2="9,99"),
        ])

        stocks = parse_resultado(html)

        assert len(stocks) == 1
        assert stocks[0].ticker == "WEGE3"
        assert stocks[0].pl == 25.5

    def test_reads_every_mapped_column(self, make_row, make_page):
        html = make_page([
            make_row(
                "PETR4",
                title="Petróleo Brasileiro S.A. - Petrobras",
                c2="3,85", c3="1,12", c5="15,30%", c10="2,50",
                c13="21,4%", c15="18,2%", c16="30,1%", c17="1.234.567.890,00",
            ),
        ])

        [s] = parse_resultado(html)

        assert s.name == "Petróleo Brasileiro S.A. - Petrobras"
        assert s.sector == "Unknown"
        assert s.pl == 3.85
        assert s.pvp == 1.12
        assert s.div_yield == 15.3
        assert s.ev_ebit == 2.5
        assert s.net_profit == 21.4
        assert s.roic == 18.2
        assert s.roe == 30.1
        assert s.liquidity == pytest.approx(1234567890.0)

    def test_name_falls_back_to_ticker(self, make_row, make_page):
        [s] = parse_resultado(make_page([make_row("VALE3")]))
        assert s.name == "VALE3"

    def test_unparseable_cell_only_nulls_that_field(self, make_row, make_page):
        [s] = parse_resultado(make_page([make_row("ITSA4", c2="-", c16="abc", c3="1,50")]))

        assert s.pl is None
        assert s.roe is None
        assert s.pvp == 1.5

    def test_missing_table_returns_empty_list(self):
        assert parse_resultado("<html><body><p>manutenção</p></body></html>") == []

    def test_short_row_keeps_available_fields(self, make_page, caplog):
        html = make_page(['<tr><td><a href="#">ABCD3</a></td><td>10,00</td><td>8,00</td></tr>'])

        [s] = parse_resultado(html)

        assert s.ticker == "ABCD3"
        assert s.pl == 8.0
        assert s.roe is None
        assert "expected at least" in caplog.text

    def test_header_count_mismatch_is_logged(self, make_row, make_page, caplog):
        html = make_page([make_row("WEGE3")], headers=["Papel", "Cotação"])

        stocks = parse_resultado(html)

        assert len(stocks) == 1
        assert "may be misaligned" in caplog.text

    def test_failing_row_does_not_abort_the_rest(self, make_row, make_page, monkeypatch):
        original = sources_fundamentus._parse_row

        def flaky(cells):
            if cells[0].get_text(strip=True) == "BAD3":
                raise RuntimeError("boom")
            return original(cells)

        monkeypatch.setattr(sources_fundamentus, "_parse_row", flaky)
        html = make_page([make_row("BAD3"), make_row("GOOD3", c2="4,00")])

        stocks = parse_resultado(html)

        assert [s.ticker for s in stocks] == ["GOOD3"]

    def test_column_map_is_single_declaration(self):
        assert COLUMNS["pl"] == 2
        assert COLUMNS["ev_ebit"] == 10
        assert COLUMNS["net_profit"] == 13
        assert COLUMNS["roic"] == 15
        assert COLUMNS["roe"] == 16
        assert COLUMNS["liquidity"] == 17


class TestFetch:
    def test_network_error_becomes_fetch_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(FetchError, match="connection refused"):
            fetch_resultado_html(session)

    def test_http_error_becomes_fetch_error(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        session = MagicMock()
        session.get.return_value = response

        with pytest.raises(FetchError, match="503"):
            fetch_resultado_html(session)

    def test_scrape_fetches_and_parses(self, make_row, make_page):
        response = MagicMock()
        response.encoding = "utf-8"
        response.text = make_page([make_row("WEGE3", c2="25,50")])
        session = MagicMock()
        session.get.return_value = response

        stocks = scrape_fundamentus(session)

        assert [s.ticker for s in stocks] == ["WEGE3"]
        url = session.get.call_args[0][0]
        assert url.endswith("resultado.php")
