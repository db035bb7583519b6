from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Date, Float, Boolean, Integer, ForeignKey, UniqueConstraint
import datetime

class Base(DeclarativeBase):
    pass

class Stock(Base):
    __tablename__ = "stocks"
    ticker: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    sector: Mapped[str | None] = mapped_column(String, default="Unknown")
    subsector: Mapped[str | None] = mapped_column(String)
    is_state_owned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

class Fundamental(Base):
    __tablename__ = "fundamentals"
    __table_args__ = (UniqueConstraint("ticker", "date", name="uq_fundamentals_ticker_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticker: Mapped[str] = mapped_column(String, ForeignKey("stocks.ticker"), nullable=False, index=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    pl: Mapped[float | None] = mapped_column(Float)
    roe: Mapped[float | None] = mapped_column(Float)
    pvp: Mapped[float | None] = mapped_column(Float)
    div_yield: Mapped[float | None] = mapped_column(Float)
    # populated from the "Mrg. Líq." column when scraped, not an absolute profit
    net_profit: Mapped[float | None] = mapped_column(Float)

    # Magic Formula inputs
    ebit_ev: Mapped[float | None] = mapped_column(Float)
    roic: Mapped[float | None] = mapped_column(Float)

FUNDAMENTAL_FIELDS = ("pl", "roe", "pvp", "div_yield", "net_profit", "ebit_ev", "roic")
