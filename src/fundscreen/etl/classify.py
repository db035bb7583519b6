STATE_OWNED_KEYWORDS = [
    "banco do brasil",
    "petrobras",
    "eletrobras",
    "caixa",
    "correios",
    "sabesp",
    "copel",
    "cemig",
    "telebras",
]

STATE_OWNED_TICKERS = {
    "BBAS3",           # Banco do Brasil
    "PETR3", "PETR4",  # Petrobras
    "ELET3", "ELET6",  # Eletrobras
    "CXSE3",           # Caixa Seguridade
    "SBSP3",           # Sabesp
    "CPLE6",           # Copel
    "CMIG4",           # Cemig
}


def is_state_owned(name: str | None, ticker: str | None) -> bool:
    """
    Heuristic state-owned flag: name keyword or known share class.

    Not authoritative; newly listed state enterprises are missed.
    """
    lower_name = (name or "").lower()
    upper_ticker = (ticker or "").strip().upper()

    if any(k in lower_name for k in STATE_OWNED_KEYWORDS):
        return True
    return upper_ticker in STATE_OWNED_TICKERS
