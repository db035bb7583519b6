"""Shared test fixtures."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fundscreen.api.main import app
from fundscreen.db import get_db, init_db

RESULTADO_HEADERS = [
    "Papel", "Cotação", "P/L", "P/VP", "PSR", "Div.Yield", "P/Ativo", "P/Cap.Giro",
    "P/EBIT", "P/Ativ Circ.Liq", "EV/EBIT", "EV/EBITDA", "Mrg Ebit", "Mrg. Líq.",
    "Liq. Corr.", "ROIC", "ROE", "Liq.2meses", "Patrim. Líq", "Dív.Brut/ Patrim.",
    "Cresc. Rec.5a",
]


def resultado_row(ticker, title=None, **cells):
    """One <tr> of resultado.php; unspecified cells are "0,00"."""
    values = ["0,00"] * len(RESULTADO_HEADERS)
    for idx, text in cells.items():
        values[int(idx.lstrip("c"))] = text
    if ticker:
        title_attr = f' title="{title}"' if title else ""
        first = f'<td><span class="tips"><a href="detalhes.php?papel={ticker}"{title_attr}>{ticker}</a></span></td>'
    else:
        first = "<td></td>"
    return "<tr>" + first + "".join(f"<td>{v}</td>" for v in values[1:]) + "</tr>"


def resultado_page(rows, headers=RESULTADO_HEADERS):
    head = "".join(f"<th>{h}</th>" for h in headers)
    return (
        "<html><body><table id=\"resultado\">"
        f"<thead><tr>{head}</tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table></body></html>"
    )


@pytest.fixture
def make_row():
    return resultado_row


@pytest.fixture
def make_page():
    return resultado_page


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def _get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        # no context manager: the start-up hook (seed) is not run
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
