"""
Core-level statement helpers keyed by model attribute names.

The data access layer moves plain dicts (not ORM instances) through the
envelope, so decrypted values are never attached to a session where a flush
could write plaintext back. Records are keyed by attribute name (``parent_id``)
while the tables keep their MySQL column names (``from``).
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any

from sqlalchemy import Column, Select, delete, insert, inspect, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.errors import TransactionAbortedError, UniqueViolationError

logger = logging.getLogger(__name__)

# MySQL: 1205 lock wait timeout, 1213 deadlock
_ABORT_CODES = {1205, 1213}


@lru_cache
def column_map(model: type) -> dict[str, Column]:
    return {attr.key: attr.columns[0] for attr in inspect(model).column_attrs}


def to_columns(model: type, record: Mapping[str, Any]) -> dict[Column, Any]:
    columns = column_map(model)
    return {columns[key]: value for key, value in record.items()}


def select_records(model: type) -> Select:
    """SELECT every column of model, labelled by attribute name."""
    return select(*(column.label(key) for key, column in column_map(model).items()))


def insert_record(model: type, row: Mapping[str, Any]):
    return insert(model.__table__).values(to_columns(model, row))


def update_records(model: type, changes: Mapping[str, Any]):
    return update(model.__table__).values(to_columns(model, changes))


def delete_records(model: type):
    return delete(model.__table__)


async def fetch_one(db: AsyncSession, stmt: Select) -> dict | None:
    result = await db.execute(stmt)
    row = result.mappings().first()
    return dict(row) if row is not None else None


async def fetch_all(db: AsyncSession, stmt: Select) -> list[dict]:
    result = await db.execute(stmt)
    return [dict(row) for row in result.mappings().all()]


def _is_transaction_abort(error: OperationalError) -> bool:
    code = error.orig.args[0] if error.orig is not None and error.orig.args else None
    if code in _ABORT_CODES:
        return True
    return "database is locked" in str(error.orig)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block as one unit of work.

    Joins the session's open transaction if there is one (the request-scoped
    session from get_db), otherwise begins and commits its own. Any failure
    rolls the whole session back so no partial write survives. Integrity errors
    surface as UniqueViolationError, lock/deadlock aborts as
    TransactionAbortedError.
    """
    owns_transaction = not db.in_transaction()
    try:
        if owns_transaction:
            async with db.begin():
                yield db
        else:
            yield db
    except IntegrityError as e:
        await db.rollback()
        raise UniqueViolationError("Record already exists") from e
    except OperationalError as e:
        await db.rollback()
        if _is_transaction_abort(e):
            logger.warning("Transaction aborted by the database: %s", e.orig)
            raise TransactionAbortedError("Transaction aborted, safe to retry") from e
        raise
    except BaseException:
        if db.in_transaction():
            await db.rollback()
        raise
