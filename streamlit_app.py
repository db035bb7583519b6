import os
import requests
import pandas as pd
import streamlit as st

# -----------------------------
# Page setup
# -----------------------------
st.set_page_config(page_title="Fundamentus Screener (B3)", layout="wide")
st.title("Ações B3: filtros fundamentalistas e Fórmula Mágica")

# -----------------------------
# API_BASE (works without secrets.toml)
# -----------------------------
def resolve_api_base() -> str:
    # 1) environment variable first
    env = os.getenv("API_BASE")
    if env:
        return env

    # 2) secrets.toml when present, otherwise the local default
    try:
        return st.secrets.get("API_BASE", "http://127.0.0.1:8000")
    except Exception:
        return "http://127.0.0.1:8000"

API_BASE = resolve_api_base()

@st.cache_data(ttl=300)
def api_get(path: str, params: dict | None = None):
    """GET against the FastAPI backend (errors are shown by Streamlit)."""
    url = f"{API_BASE}{path}"
    r = requests.get(url, params=params, timeout=30)
    r.raise_for_status()
    return r.json()

def api_post(path: str):
    url = f"{API_BASE}{path}"
    r = requests.post(url, timeout=120)
    return r.status_code, r.json()

# -----------------------------
# Column labels
# -----------------------------
COL_PT = {
    "ticker": "Papel",
    "name": "Empresa",
    "sector": "Setor",
    "pl": "P/L",
    "pvp": "P/VP",
    "roe": "ROE (%)",
    "roic": "ROIC (%)",
    "div_yield": "Div. Yield (%)",
    "ebit_ev": "EBIT/EV",
    "net_profit": "Mrg. Líq. (proxy lucro)",
    "magic_rank": "Rank Fórmula Mágica",
    "is_state_owned": "Estatal",
}


def fmt_float2(x):
    """Two decimals, blank for None."""
    if x is None:
        return ""
    try:
        return f"{float(x):,.2f}"
    except (TypeError, ValueError):
        return str(x)


# -----------------------------
# Sidebar filters
# -----------------------------
st.sidebar.header("Filtros")
mode = st.sidebar.radio("Modo", ["Todas as ações", "Fórmula Mágica"], index=0)

search = st.sidebar.text_input("Buscar (papel ou nome)", value="")
use_max_pl = st.sidebar.checkbox("P/L máximo", value=False)
max_pl = st.sidebar.number_input("P/L ≤", value=15.0, disabled=not use_max_pl)
use_min_roe = st.sidebar.checkbox("ROE mínimo", value=False)
min_roe = st.sidebar.number_input("ROE (%) ≥", value=15.0, disabled=not use_min_roe)
use_max_pvp = st.sidebar.checkbox("P/VP máximo", value=False)
max_pvp = st.sidebar.number_input("P/VP ≤", value=2.0, disabled=not use_max_pvp)
use_min_dy = st.sidebar.checkbox("Div. Yield mínimo", value=False)
min_dy = st.sidebar.number_input("Div. Yield (%) ≥", value=6.0, disabled=not use_min_dy)
exclude_state_owned = st.sidebar.checkbox("Excluir estatais", value=False)

st.sidebar.divider()
# -----------------------------
# Watchlist (kept for the browser session)
# -----------------------------
if "watchlist" not in st.session_state:
    st.session_state.watchlist = []

st.sidebar.subheader("Favoritos")
new_fav = st.sidebar.text_input("Adicionar papel", value="")
if st.sidebar.button("Adicionar") and new_fav.strip():
    fav = new_fav.strip().upper()
    if fav not in st.session_state.watchlist:
        st.session_state.watchlist.append(fav)
if st.session_state.watchlist:
    to_remove = st.sidebar.selectbox("Remover papel", options=st.session_state.watchlist)
    if st.sidebar.button("Remover"):
        st.session_state.watchlist.remove(to_remove)
        st.rerun()
    st.sidebar.caption(", ".join(st.session_state.watchlist))
only_watchlist = st.sidebar.checkbox("Somente favoritos", value=False)
highlight_watchlist = st.sidebar.checkbox("Destacar favoritos", value=True)

st.sidebar.divider()
if st.sidebar.button("Atualizar dados (scrape)"):
    with st.spinner("Coletando dados do Fundamentus..."):
        status, body = api_post("/api/scrape")
    if status == 200:
        st.sidebar.success(
            f"{body.get('scraped')} ações | novas={body.get('stocks_created')} "
            f"atualizadas={body.get('stocks_updated')} snapshots={body.get('fundamentals_written')}"
        )
        api_get.clear()
    else:
        st.sidebar.error(body.get("detail", "Falha no scrape"))


def build_params(sort_by: str) -> dict:
    """Filter values for this run, passed explicitly to every query."""
    params = {
        "exclude_state_owned": str(exclude_state_owned).lower(),
        "sort_by": sort_by,
    }
    if search.strip():
        params["search"] = search.strip()
    if use_max_pl:
        params["max_pl"] = max_pl
    if use_min_roe:
        params["min_roe"] = min_roe
    if use_max_pvp:
        params["max_pvp"] = max_pvp
    if use_min_dy:
        params["min_div_yield"] = min_dy
    return params


def to_table(items: list[dict], with_rank: bool) -> pd.DataFrame:
    rows = []
    for it in items:
        latest = it.get("latest") or {}
        row = {
            COL_PT["ticker"]: it.get("ticker"),
            COL_PT["name"]: it.get("name"),
            COL_PT["sector"]: it.get("sector"),
            COL_PT["pl"]: fmt_float2(latest.get("pl")),
            COL_PT["pvp"]: fmt_float2(latest.get("pvp")),
            COL_PT["roe"]: fmt_float2(latest.get("roe")),
            COL_PT["roic"]: fmt_float2(latest.get("roic")),
            COL_PT["div_yield"]: fmt_float2(latest.get("div_yield")),
            COL_PT["ebit_ev"]: fmt_float2(latest.get("ebit_ev")),
            COL_PT["is_state_owned"]: "sim" if it.get("is_state_owned") else "",
        }
        if with_rank:
            row = {COL_PT["magic_rank"]: it.get("magic_rank"), **row}
        rows.append(row)
    return pd.DataFrame(rows)


def keep_watchlist(items: list[dict]) -> list[dict]:
    """Rows of watched tickers only, after ranking so ranks stay global."""
    if not only_watchlist:
        return items
    watched = set(st.session_state.watchlist)
    return [it for it in items if it.get("ticker") in watched]


def show_table(df: pd.DataFrame):
    if not highlight_watchlist or df.empty or not st.session_state.watchlist:
        st.dataframe(df, use_container_width=True, height=520)
        return
    watched = set(st.session_state.watchlist)

    def paint(row):
        color = "background-color: #fff3b0" if row[COL_PT["ticker"]] in watched else ""
        return [color] * len(row)

    st.dataframe(df.style.apply(paint, axis=1), use_container_width=True, height=520)


# -----------------------------
# Detail view
# -----------------------------
def render_detail(ticker: str):
    st.divider()
    try:
        detail = api_get(f"/api/stocks/{ticker}")
    except requests.HTTPError:
        st.warning(f"{ticker} não encontrado.")
        return

    stock = detail.get("stock", {})
    history = detail.get("history", [])
    st.subheader(f"{stock.get('name')} ({stock.get('ticker')})")
    st.caption(f"Setor: {stock.get('sector') or 'Unknown'} | Estatal: {'sim' if stock.get('is_state_owned') else 'não'}")

    if not history:
        st.info("Sem histórico de indicadores.")
        return

    df = pd.DataFrame(history)
    df["date"] = pd.to_datetime(df["date"])
    df = df.set_index("date")

    latest = history[-1]
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("P/L", fmt_float2(latest.get("pl")))
    c2.metric("ROE (%)", fmt_float2(latest.get("roe")))
    c3.metric("P/VP", fmt_float2(latest.get("pvp")))
    c4.metric("Div. Yield (%)", fmt_float2(latest.get("div_yield")))

    st.markdown("#### ROE / ROIC")
    st.line_chart(df[["roe", "roic"]])
    st.markdown("#### Mrg. Líq. (proxy de lucro líquido)")
    st.bar_chart(df[["net_profit"]])


# =========================================================
# Mode 1) all stocks
# =========================================================
def render_all():
    items = keep_watchlist(api_get("/api/stocks", params=build_params("ticker")))
    st.caption(f"{len(items)} ações")
    if not items:
        st.info("Nenhuma ação encontrada. Rode o scrape ou ajuste os filtros.")
        return
    show_table(to_table(items, with_rank=False))

    tickers = [it["ticker"] for it in items]
    selected = st.selectbox("Detalhes do papel", options=tickers)
    if selected:
        render_detail(selected)


# =========================================================
# Mode 2) Magic Formula
# =========================================================
def render_magic_formula():
    items = keep_watchlist(api_get("/api/stocks", params=build_params("magic_formula")))
    st.caption(f"{len(items)} ações ranqueadas (rank ROIC + rank EBIT/EV, menor é melhor)")
    if not items:
        st.info("Nenhuma ação encontrada.")
        return
    top_n = st.sidebar.slider("Top N", 10, 100, 30, 10)
    show_table(to_table(items[:top_n], with_rank=True))

    with st.expander("Como funciona a Fórmula Mágica", expanded=False):
        st.markdown(
            """
- Ordena todas as ações por **ROIC** (maior primeiro) e por **EBIT/EV** (maior primeiro).
- Soma as duas posições; a menor soma fica no topo.
- Valores ausentes contam como zero e vão para o fim de cada ranking.
            """
        )


if mode == "Todas as ações":
    render_all()
else:
    render_magic_formula()
