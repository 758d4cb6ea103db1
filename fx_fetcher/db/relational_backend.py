"""SQLAlchemy backend shared by PostgreSQL, MySQL and SQLite engines."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
    and_,
    create_engine,
    insert,
    or_,
    select,
    text,
)
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fx_fetcher.db.base_backend import BackendStrategy, PersistenceResult
from fx_fetcher.errors import UNIQUE_VIOLATION, PersistenceFailure
from fx_fetcher.ingestion.models import PolicyRateRecord, RateRecord
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)

_JSON = JSON().with_variant(postgresql.JSONB(), "postgresql")

metadata = MetaData()

fx_rates = Table(
    "fx_rates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("base_date", Date, nullable=False),
    Column("base_time", String(8), nullable=True),
    Column("currency_code", String(32), nullable=False),
    Column("currency_name", String(64), nullable=True),
    Column("deal_bas_r", Numeric(18, 6), nullable=False),
    Column("ttb", Numeric(18, 6), nullable=False),
    Column("tts", Numeric(18, 6), nullable=False),
    Column("provider", String(32), nullable=False),
    Column("raw", _JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("base_date", "currency_code", "provider", name="uq_fx_rates_day_currency"),
)

ecos_base_rate = Table(
    "ecos_base_rate",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("stat_code", String(16), nullable=False),
    Column("stat_name", String(128), nullable=True),
    Column("cycle", String(4), nullable=False),
    Column("unit_name", String(32), nullable=True),
    Column("time_period", String(16), nullable=False),
    Column("data_value", Numeric(18, 6), nullable=True),
    Column("raw", _JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("stat_code", "time_period", name="uq_ecos_base_rate_period"),
)

FX_RATES_KEY = ("base_date", "currency_code", "provider")
ECOS_BASE_RATE_KEY = ("stat_code", "time_period")
_PRESERVED_ON_UPDATE = {"id", "created_at"}


class RelationalBackend(BackendStrategy):
    """Base class that encapsulates SQLAlchemy powered interactions."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine_instance: Engine | None = None

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            connect_args: dict[str, Any] = {}
            if self.url.startswith("sqlite"):
                connect_args["check_same_thread"] = False
            self._engine_instance = create_engine(
                self.url, future=True, connect_args=connect_args
            )
        return self._engine_instance

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Connection]:
        try:
            with self._get_engine().begin() as connection:
                yield connection
        except SQLAlchemyError as exc:
            code = _sqlstate(exc)
            LOGGER.error("Database error while %s (code=%s): %s", action, code, exc)
            raise PersistenceFailure(
                f"Database write failed ({action}): {_error_text(exc)}", code=code
            ) from exc

    def ensure_schema(self) -> None:
        with self._transaction("ensuring schema") as connection:
            LOGGER.info("Ensuring fx_rates and ecos_base_rate schema exists")
            connection.execute(text("SELECT 1"))
            metadata.create_all(connection)

    def upsert_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        result = PersistenceResult()
        if not rows:
            return result
        params = [_rate_params(row) for row in rows]
        with self._transaction("upserting fx_rates") as connection:
            existing = _count_existing(connection, fx_rates, FX_RATES_KEY, params)
            connection.execute(self._upsert_statement(fx_rates, FX_RATES_KEY), params)
        result.updated = existing
        result.inserted = len(params) - existing
        LOGGER.info(
            "fx_rates: inserted %s rows, updated %s rows (total %s)",
            result.inserted,
            result.updated,
            result.total,
        )
        return result

    def insert_policy_rate(self, record: PolicyRateRecord) -> PersistenceResult:
        with self._transaction("inserting ecos_base_rate") as connection:
            connection.execute(insert(ecos_base_rate), [_policy_params(record)])
        LOGGER.info("ecos_base_rate: inserted %s/%s", record.stat_code, record.time_period)
        return PersistenceResult(inserted=1)

    def upsert_policy_rate(self, record: PolicyRateRecord) -> PersistenceResult:
        params = [_policy_params(record)]
        with self._transaction("upserting ecos_base_rate") as connection:
            existing = _count_existing(connection, ecos_base_rate, ECOS_BASE_RATE_KEY, params)
            connection.execute(
                self._upsert_statement(ecos_base_rate, ECOS_BASE_RATE_KEY), params
            )
        LOGGER.info(
            "ecos_base_rate: upserted %s/%s (existing=%s)",
            record.stat_code,
            record.time_period,
            existing,
        )
        return PersistenceResult(inserted=1 - existing, updated=existing)

    def _upsert_statement(self, table: Table, key: Sequence[str]):
        dialect = self._get_engine().dialect.name
        update_columns = [
            column.name
            for column in table.columns
            if column.name not in _PRESERVED_ON_UPDATE and column.name not in key
        ]
        if dialect in {"mysql", "mariadb"}:
            mysql_stmt = mysql.insert(table)
            return mysql_stmt.on_duplicate_key_update(
                {name: mysql_stmt.inserted[name] for name in update_columns}
            )
        builders: dict[str, Callable[[Table], Any]] = {
            "postgresql": postgresql.insert,
            "sqlite": sqlite.insert,
        }
        builder = builders.get(dialect)
        if builder is None:
            raise PersistenceFailure(f"Upserts are not supported for the {dialect} dialect")
        stmt = builder(table)
        return stmt.on_conflict_do_update(
            index_elements=list(key),
            set_={name: stmt.excluded[name] for name in update_columns},
        )

    def fetch_rates(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        provider: str | None = None,
    ) -> list[RateRecord]:
        stmt = select(fx_rates).order_by(fx_rates.c.base_date, fx_rates.c.currency_code)
        if start is not None:
            stmt = stmt.where(fx_rates.c.base_date >= start)
        if end is not None:
            stmt = stmt.where(fx_rates.c.base_date <= end)
        if provider is not None:
            stmt = stmt.where(fx_rates.c.provider == provider)
        with self._get_engine().connect() as connection:
            return [
                RateRecord(
                    base_date=_normalise_date(mapping["base_date"]),
                    currency_code=mapping["currency_code"],
                    currency_name=mapping["currency_name"],
                    deal_bas_r=mapping["deal_bas_r"],
                    ttb=mapping["ttb"],
                    tts=mapping["tts"],
                    provider=mapping["provider"],
                    base_time=mapping["base_time"],
                    raw=mapping["raw"] or {},
                )
                for mapping in connection.execute(stmt).mappings()
            ]

    def fetch_policy_rates(self, stat_code: str | None = None) -> list[PolicyRateRecord]:
        stmt = select(ecos_base_rate).order_by(ecos_base_rate.c.time_period)
        if stat_code is not None:
            stmt = stmt.where(ecos_base_rate.c.stat_code == stat_code)
        with self._get_engine().connect() as connection:
            return [
                PolicyRateRecord(
                    stat_code=mapping["stat_code"],
                    stat_name=mapping["stat_name"],
                    cycle=mapping["cycle"],
                    unit_name=mapping["unit_name"],
                    time_period=mapping["time_period"],
                    data_value=mapping["data_value"],
                    raw=mapping["raw"] or {},
                )
                for mapping in connection.execute(stmt).mappings()
            ]

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


def _rate_params(row: RateRecord) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "base_date": row.base_date,
        "base_time": row.base_time,
        "currency_code": row.currency_code,
        "currency_name": row.currency_name,
        "deal_bas_r": row.deal_bas_r,
        "ttb": row.ttb,
        "tts": row.tts,
        "provider": row.provider,
        "raw": row.raw,
        "created_at": now,
        "updated_at": now,
    }


def _policy_params(record: PolicyRateRecord) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "stat_code": record.stat_code,
        "stat_name": record.stat_name,
        "cycle": record.cycle,
        "unit_name": record.unit_name,
        "time_period": record.time_period,
        "data_value": record.data_value,
        "raw": record.raw,
        "created_at": now,
        "updated_at": now,
    }


def _count_existing(
    connection: Connection,
    table: Table,
    key: Sequence[str],
    params: Sequence[dict[str, Any]],
) -> int:
    matches = [and_(*(table.c[name] == row[name] for name in key)) for row in params]
    stmt = select(*(table.c[name] for name in key)).where(or_(*matches))
    return len(connection.execute(stmt).all())


def _sqlstate(exc: SQLAlchemyError) -> str | None:
    """Best-effort SQLSTATE for ``exc``; engine-specific unique errors map to 23505."""

    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return str(code)
    if isinstance(exc, IntegrityError):
        args = getattr(orig, "args", ())
        if args and args[0] == 1062:
            return UNIQUE_VIOLATION
        message = _error_text(exc).lower()
        if "unique constraint" in message or "duplicate" in message:
            return UNIQUE_VIOLATION
    return None


def _error_text(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc)


def _normalise_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


__all__ = ["RelationalBackend", "ecos_base_rate", "fx_rates", "metadata"]
