"""SQLAlchemy ORM models for stored kline payloads."""
from sqlalchemy import Column, DateTime, Index, Integer, LargeBinary, String
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class KlinePayload(Base):
    """Serialized kline series for one symbol/timeframe, addressed by storage key."""

    __tablename__ = "kline_payloads"

    key = Column(String(255), primary_key=True)
    symbol = Column(String(40), nullable=False)
    timeframe = Column(String(10), nullable=False)

    payload = Column(LargeBinary, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    stored_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index("ix_kline_payloads_symbol_timeframe", "symbol", "timeframe"),
    )

    def __repr__(self) -> str:
        return (
            f"KlinePayload("
            f"key={self.key}, "
            f"size_bytes={self.size_bytes})"
        )
