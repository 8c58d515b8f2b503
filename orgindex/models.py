from typing import Any

from sqlalchemy import JSON
from sqlalchemy import Float
from sqlalchemy import String
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column

from orgindex.db import Base


class CacheEntryRecord(Base):
    """One cached upstream payload, keyed by endpoint path within a namespace."""

    __tablename__ = "cache_entries"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_cache_namespace_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    namespace: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(500), nullable=False)
    data: Mapped[Any] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[float] = mapped_column(Float, nullable=False)
    ttl_seconds: Mapped[float] = mapped_column(Float, nullable=False)
