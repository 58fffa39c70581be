"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when a database operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record lookup by id matches nothing."""


class UniqueConstraintError(DatabaseError):
    """Raised when a write violates a UNIQUE constraint."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter queries via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _encode_value(value: Any) -> Any:
    """Encode a Python value into something SQLite can bind."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        return "%" + value.replace("%", "\\%").replace("_", "\\_") + "%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _parse_single_comparison(comparison: str) -> tuple[str, str | int | float | None]:
    """Parse a single comparison expression into a SQL condition and parameter."""
    match = re.match(
        r"""(\w+)\s*(=|!=|>|<|>=|<=|~)\s*(['"])([^'"]*)\3""",
        comparison,
    )
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field = match.group(1)
    op = match.group(2)
    raw_value = match.group(4)

    sql_op = _get_sql_operator(op)
    is_like = sql_op == "LIKE"
    value = _parse_value(raw_value, is_like=is_like)

    if is_like:
        return f"{field} LIKE ? ESCAPE '\\'", value
    return f"{field} {sql_op} ?", value


def _parse_or_group(or_group: str) -> tuple[str, list[str | int | float | None]]:
    """Parse a parenthesized OR group into a SQL condition and parameters."""
    inner = or_group[1:-1]
    or_parts = [p.strip() for p in inner.split("||")]
    or_conditions = []
    or_params = []

    for part in or_parts:
        cond, value = _parse_single_comparison(part)
        or_conditions.append(cond)
        or_params.append(value)

    return f"({' OR '.join(or_conditions)})", or_params


def _split_and_conditions(filter_query: str) -> list[str]:
    """Split filter query by && while preserving parenthesized groups."""
    parts = []
    current = ""
    paren_depth = 0

    for char in filter_query:
        if char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1

        current += char

        if paren_depth == 0 and current.endswith("&&"):
            parts.append(current[:-2].strip())
            current = ""

    if current.strip():
        parts.append(current.strip())

    return parts


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Supports `field op "value"` comparisons joined with `&&`, and parenthesized
    `||` groups, e.g. `status = "PENDING" && (priority = "HIGH" || priority = "URGENT")`.
    """
    if not filter_query:
        return "", []

    parts = _split_and_conditions(filter_query)
    conditions = []
    params = []

    for raw_part in parts:
        part = raw_part.strip()

        if part.startswith("(") and part.endswith(")"):
            cond, cond_params = _parse_or_group(part)
            conditions.append(cond)
            params.extend(cond_params)
        else:
            cond, value = _parse_single_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def _build_order_by(sort: str) -> str:
    """Translate `+field`, `-field` or `field ASC|DESC` (comma separated) into an ORDER BY clause."""
    clauses = []
    for raw_term in sort.split(","):
        term = raw_term.strip()
        if not term:
            continue
        if term[0] in "+-":
            direction = "DESC" if term[0] == "-" else "ASC"
            term = f"{term[1:]} {direction}"
        if not re.match(r"^[A-Za-z_][A-Za-z0-9_]*(\s+(ASC|DESC))?$", term, re.IGNORECASE):
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return "id ASC"
        clauses.append(term)
    return ", ".join(clauses) or "id ASC"


def _raise_write_error(e: Exception, *, collection: str, action: str) -> NoReturn:
    """Translate a driver exception raised by a write into a DatabaseError subclass."""
    if isinstance(e, aiosqlite.IntegrityError) and "UNIQUE constraint failed" in str(e):
        logger.warning("unique_constraint_violation", extra={"collection": collection, "error": str(e)})
        msg = f"Duplicate record in {collection}: {e}"
        raise UniqueConstraintError(msg) from e
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        msg = f"Table '{collection}' does not exist. Call init_db() first."
        raise DatabaseError(msg) from e
    logger.error(f"{action}_failed", extra={"collection": collection, "error": str(e)})
    msg = f"Failed to {action.replace('_', ' ')} in {collection}: {e}"
    raise DatabaseError(msg) from e


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_connection_locks: dict[tuple[int, int, str], asyncio.Lock] = {}
_db_lock = asyncio.Lock()
_in_transaction: ContextVar[bool] = ContextVar("_in_transaction", default=False)


def _connection_key(db_path: str | None = None) -> tuple[int, int, str]:
    """Cache key for the current thread, loop, and db path."""
    loop = asyncio.get_event_loop()
    return threading.get_ident(), id(loop), str(get_db_path(db_path))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    loop = asyncio.get_event_loop()
    cache_key = _connection_key(db_path)
    thread_id, loop_id, path_str = cache_key

    if cache_key in _db_connections:
        cached_conn = _db_connections[cache_key]
        if not loop.is_closed():
            return cached_conn
        async with _db_lock:
            _db_connections.pop(cache_key, None)
            _connection_locks.pop(cache_key, None)

    async with _db_lock:
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path = Path(path_str)
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn
        _connection_locks[cache_key] = asyncio.Lock()

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": path_str, "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _connection_key(db_path)
    thread_id, loop_id, _ = cache_key

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            if cache_key in _db_connections:
                conn = _db_connections.pop(cache_key)
                _connection_locks.pop(cache_key, None)
                await conn.close()
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": cache_key[2]},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema

    await schema.init_db(db_path=db_path)


@asynccontextmanager
async def transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed writes as one atomic unit.

    Writes issued through this module inside the block are committed together
    on exit, or rolled back together if the block raises. Nested blocks join
    the outermost transaction. The block holds the connection lock, so other
    coroutines' reads and writes wait until it commits or rolls back.

    Usage:
        async with db_client.transaction():
            await db_client.update_record(...)
            await db_client.create_record(...)
    """
    conn = await get_connection()
    if _in_transaction.get():
        yield conn
        return

    lock = _connection_locks[_connection_key()]
    async with lock:
        token = _in_transaction.set(True)
        try:
            await conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                logger.info("Rolled back transaction")
                raise
            await conn.commit()
        finally:
            _in_transaction.reset(token)


@asynccontextmanager
async def _connection_scope(*, write: bool = False) -> AsyncIterator[aiosqlite.Connection]:
    """Yield the shared connection for a single statement.

    Inside transaction() the caller already holds the connection lock and the
    enclosing block owns the commit. Outside it the statement takes the lock,
    and a write is committed (or rolled back) before the lock is released.
    """
    conn = await get_connection()
    if _in_transaction.get():
        yield conn
        return

    async with _connection_locks[_connection_key()]:
        try:
            yield conn
        except BaseException:
            if write:
                await conn.rollback()
            raise
        if write:
            await conn.commit()


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_collection_name(collection)
    now = datetime.now().isoformat()
    row = {"created": now, "updated": now, **data}
    columns = list(row.keys())
    columns_str = ", ".join(columns)
    placeholders_str = ", ".join("?" for _ in columns)
    values = [_encode_value(row[key]) for key in columns]

    query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
    try:
        async with _connection_scope(write=True) as conn:
            cursor = await conn.execute(query, values)
            record_id = cursor.lastrowid
    except Exception as e:
        _raise_write_error(e, collection=collection, action="create_record")

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not str(record_id).isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    try:
        async with _connection_scope() as conn:
            cursor = await conn.execute(query, (int(record_id),))
            row = await cursor.fetchone()
            columns = [description[0] for description in cursor.description]
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_collection_name(collection)
    # Raises RecordNotFoundError before any write is attempted
    await get_record(collection=collection, record_id=record_id)

    row = {**data, "updated": datetime.now().isoformat()}
    set_clause = ", ".join(f"{key} = ?" for key in row)
    values = [_encode_value(val) for val in row.values()]
    values.append(int(record_id))

    query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
    try:
        async with _connection_scope(write=True) as conn:
            await conn.execute(query, values)
    except Exception as e:
        _raise_write_error(e, collection=collection, action="update_record")

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def update_records(*, collection: str, filter_query: str, data: dict[str, Any]) -> int:
    """Apply one set-based UPDATE to every record matching the filter.

    Returns:
        Number of rows changed
    """
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)
    if not filter_query:
        msg = "update_records requires a filter"
        raise ValueError(msg)

    _validate_collection_name(collection)
    where_clause, where_params = parse_filter(filter_query)
    row = {**data, "updated": datetime.now().isoformat()}
    set_clause = ", ".join(f"{key} = ?" for key in row)
    values = [_encode_value(val) for val in row.values()]

    query = f"UPDATE {collection} SET {set_clause} WHERE {where_clause}"  # noqa: S608 - collection is validated
    try:
        async with _connection_scope(write=True) as conn:
            cursor = await conn.execute(query, [*values, *where_params])
            count = cursor.rowcount
    except Exception as e:
        _raise_write_error(e, collection=collection, action="update_records")

    logger.info("Updated records", extra={"collection": collection, "count": count})
    return count


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    try:
        async with _connection_scope(write=True) as conn:
            cursor = await conn.execute(query, (int(record_id),))
            deleted = cursor.rowcount
    except Exception as e:
        _raise_write_error(e, collection=collection, action="delete_record")

    if deleted == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def delete_records(*, collection: str, filter_query: str) -> int:
    """Delete every record matching the filter in one statement.

    Returns:
        Number of rows deleted
    """
    if not filter_query:
        msg = "delete_records requires a filter"
        raise ValueError(msg)

    _validate_collection_name(collection)
    where_clause, where_params = parse_filter(filter_query)

    query = f"DELETE FROM {collection} WHERE {where_clause}"  # noqa: S608 - collection is validated
    try:
        async with _connection_scope(write=True) as conn:
            cursor = await conn.execute(query, where_params)
            count = cursor.rowcount
    except Exception as e:
        _raise_write_error(e, collection=collection, action="delete_records")

    logger.info("Deleted records", extra={"collection": collection, "count": count})
    return count


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)
    where_clause = ""
    params: list[Any] = []
    if filter_query:
        where_clause, params = parse_filter(filter_query)
        where_clause = f"WHERE {where_clause}"

    order_by = _build_order_by(sort) if sort else "id ASC"
    offset = (page - 1) * per_page

    query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
    params.extend([per_page, offset])
    try:
        async with _connection_scope() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            columns = [description[0] for description in cursor.description]
        records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e

    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records matching the filter."""
    _validate_collection_name(collection)
    where_clause, params = parse_filter(filter_query)
    query = f"SELECT COUNT(*) FROM {collection}"  # noqa: S608 - collection is validated
    if where_clause:
        query += f" WHERE {where_clause}"
    try:
        async with _connection_scope() as conn:
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
    except Exception as e:
        logger.error("count_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to count records in {collection}: {e}"
        raise DatabaseError(msg) from e

    return int(row[0]) if row else 0


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
