"""SQL-backed option store."""

import json
from pathlib import Path
from typing import Any

from sqlalchemy import Column, Integer, String, Text, create_engine, delete, select
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ..utils.logging import get_logger
from .options import OptionStore

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


class OptionRecord(Base):
    """SQLAlchemy model for a single option."""

    __tablename__ = "options"

    id = Column(Integer, primary_key=True, autoincrement=True)
    option_name = Column(String(191), unique=True, nullable=False)
    option_value = Column(Text)  # JSON string


class SqlOptionStore(OptionStore):
    """
    Option store persisted in a relational table.

    Values are JSON-encoded so ints, strings and small structures round-trip.
    """

    def __init__(self, db_url: str) -> None:
        self._db_url = db_url

        # Ensure directory exists
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "///" in db_url:
            db_path = db_url.split("///")[-1]
            if db_path:
                Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_engine(db_url)
        self._session_factory = sessionmaker(bind=self._engine, class_=Session, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        logger.info("SQL option store ready", url=self._engine.url.render_as_string(hide_password=True))

    def get_option(self, key: str, default: Any = None) -> Any:
        with self._session_factory() as session:
            record = session.execute(
                select(OptionRecord).where(OptionRecord.option_name == key)
            ).scalar_one_or_none()
            if record is None or record.option_value is None:
                return default
            return json.loads(record.option_value)

    def update_option(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        with self._session_factory() as session:
            record = session.execute(
                select(OptionRecord).where(OptionRecord.option_name == key)
            ).scalar_one_or_none()
            if record is None:
                session.add(OptionRecord(option_name=key, option_value=encoded))
            else:
                record.option_value = encoded
            session.commit()

    def delete_option(self, key: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(delete(OptionRecord).where(OptionRecord.option_name == key))
            session.commit()
            return bool(result.rowcount)

    def all_options(self) -> dict[str, Any]:
        with self._session_factory() as session:
            records = session.execute(select(OptionRecord).order_by(OptionRecord.id)).scalars()
            return {
                r.option_name: json.loads(r.option_value) if r.option_value is not None else None
                for r in records
            }

    def close(self) -> None:
        self._engine.dispose()
