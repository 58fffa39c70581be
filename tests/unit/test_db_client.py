"""Tests for the SQLite client: filters, CRUD and transactions."""

import asyncio
from datetime import date

import pytest

from src.core import db_client
from src.core.db_client import (
    DatabaseError,
    RecordNotFoundError,
    UniqueConstraintError,
    parse_filter,
)
from src.services import task_service


@pytest.mark.unit
class TestParseFilter:
    """Tests for filter query parsing."""

    def test_empty_filter(self):
        """Empty filters produce no WHERE clause."""
        assert parse_filter("") == ("", [])

    def test_and_conditions(self):
        """Conditions joined with && become AND."""
        clause, params = parse_filter('status = "PENDING" && due_date < "2024-03-01"')

        assert clause == "status = ? AND due_date < ?"
        assert params == ["PENDING", "2024-03-01"]

    def test_or_group(self):
        """Parenthesized || groups become OR inside parentheses."""
        clause, params = parse_filter('home_id = "1" && (priority = "HIGH" || priority = "URGENT")')

        assert clause == "home_id = ? AND (priority = ? OR priority = ?)"
        assert params == [1, "HIGH", "URGENT"]

    def test_boolean_values(self):
        """true/false literals bind as booleans."""
        _, params = parse_filter('is_active = "true"')
        assert params == [True]

    def test_like_operator_escapes_wildcards(self):
        """~ becomes an escaped LIKE."""
        clause, params = parse_filter('name ~ "50%_off"')

        assert clause == "name LIKE ? ESCAPE '\\'"
        assert params == ["%50\\%\\_off%"]

    def test_invalid_syntax(self):
        """Malformed comparisons are rejected."""
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            parse_filter("status PENDING")


@pytest.mark.unit
class TestCrud:
    """Tests for record CRUD against a real SQLite file."""

    async def test_create_and_get_record(self, db):
        """Created records come back with string ids and audit columns."""
        record = await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Cabin"})

        assert record["id"].isdigit()
        assert record["name"] == "Cabin"
        assert record["created"]
        assert record["updated"]

        fetched = await db_client.get_record(collection="homes", record_id=record["id"])
        assert fetched == record

    async def test_foreign_keys_are_strings(self, db):
        """*_id columns surface as strings."""
        home = await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Cabin"})
        asset = await db_client.create_record(collection="assets", data={"home_id": home["id"], "name": "Boiler"})

        assert asset["home_id"] == home["id"]

    async def test_dates_are_stored_as_iso_strings(self, db):
        """date values are written in ISO form."""
        home = await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Cabin"})
        task = await db_client.create_record(
            collection="tasks",
            data={"home_id": home["id"], "title": "Sweep", "due_date": date(2024, 3, 1)},
        )

        assert task["due_date"] == "2024-03-01"

    async def test_get_record_not_found(self, db):
        """Missing ids raise RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError, match="Record not found in homes: 999"):
            await db_client.get_record(collection="homes", record_id="999")

    async def test_get_record_non_numeric_id(self, db):
        """Non-numeric ids can never match."""
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="homes", record_id="abc")

    async def test_update_record(self, db):
        """update_record returns the updated row."""
        home = await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Cabin"})

        updated = await db_client.update_record(collection="homes", record_id=home["id"], data={"name": "Lodge"})

        assert updated["name"] == "Lodge"

    async def test_update_missing_record(self, db):
        """Updating a missing id raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            await db_client.update_record(collection="homes", record_id="42", data={"name": "Lodge"})

    async def test_update_records_returns_count(self, db):
        """Set-based updates report the number of changed rows."""
        for name in ("A", "B", "C"):
            await db_client.create_record(collection="homes", data={"user_id": "u1", "name": name})

        count = await db_client.update_records(
            collection="homes",
            filter_query='(name = "A" || name = "B")',
            data={"address": "Somewhere"},
        )

        assert count == 2
        assert await db_client.count_records(collection="homes", filter_query='address = "Somewhere"') == 2

    async def test_update_records_requires_filter(self, db):
        """Unfiltered bulk updates are refused."""
        with pytest.raises(ValueError, match="requires a filter"):
            await db_client.update_records(collection="homes", filter_query="", data={"name": "X"})

    async def test_delete_record(self, db):
        """Deleted records are gone; deleting twice raises."""
        home = await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Cabin"})

        await db_client.delete_record(collection="homes", record_id=home["id"])

        with pytest.raises(RecordNotFoundError):
            await db_client.delete_record(collection="homes", record_id=home["id"])

    async def test_list_records_sort_and_paginate(self, db):
        """Sorting and paging are applied in SQL."""
        for name in ("Charlie", "Alpha", "Bravo"):
            await db_client.create_record(collection="homes", data={"user_id": "u1", "name": name})

        first_page = await db_client.list_records(collection="homes", sort="+name", per_page=2)
        second_page = await db_client.list_records(collection="homes", sort="+name", per_page=2, page=2)
        descending = await db_client.list_records(collection="homes", sort="-name")

        assert [r["name"] for r in first_page] == ["Alpha", "Bravo"]
        assert [r["name"] for r in second_page] == ["Charlie"]
        assert [r["name"] for r in descending] == ["Charlie", "Bravo", "Alpha"]

    async def test_get_first_record(self, db):
        """get_first_record returns None when nothing matches."""
        await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Cabin"})

        assert (await db_client.get_first_record(collection="homes", filter_query='name = "Cabin"'))["name"] == "Cabin"
        assert await db_client.get_first_record(collection="homes", filter_query='name = "Nope"') is None

    async def test_unique_constraint_error(self, db):
        """UNIQUE violations raise UniqueConstraintError."""
        await db_client.create_record(collection="template_packs", data={"name": "Essentials"})

        with pytest.raises(UniqueConstraintError, match="Duplicate record in template_packs"):
            await db_client.create_record(collection="template_packs", data={"name": "Essentials"})

    async def test_unknown_column_raises_database_error(self, db):
        """Other write failures raise DatabaseError."""
        with pytest.raises(DatabaseError):
            await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "X", "bogus": 1})

    async def test_invalid_collection_name(self, db):
        """Collection names are validated before reaching SQL."""
        with pytest.raises(ValueError, match="Invalid collection name"):
            await db_client.list_records(collection="homes; DROP TABLE homes")


@pytest.mark.unit
class TestTransaction:
    """Tests for the transaction context manager."""

    async def test_commit_on_success(self, db):
        """Writes inside a successful block persist."""
        async with db_client.transaction():
            await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "A"})
            await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "B"})

        assert await db_client.count_records(collection="homes") == 2

    async def test_rollback_on_error(self, db):
        """A failing block discards every write in it."""
        await db_client.create_record(collection="template_packs", data={"name": "Existing"})

        with pytest.raises(UniqueConstraintError):
            async with db_client.transaction():
                await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "A"})
                await db_client.create_record(collection="template_packs", data={"name": "Existing"})

        assert await db_client.count_records(collection="homes") == 0

    async def test_nested_blocks_join_outer(self, db):
        """An inner block does not commit on its own."""
        with pytest.raises(RuntimeError, match="outer failure"):
            async with db_client.transaction():
                async with db_client.transaction():
                    await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "A"})
                msg = "outer failure"
                raise RuntimeError(msg)

        assert await db_client.count_records(collection="homes") == 0

    async def test_concurrent_write_does_not_commit_open_transaction(
        self, home, furnace, filter_template, make_schedule
    ):
        """A plain write from another coroutine waits for the open block instead of committing it."""
        schedule = await make_schedule(asset=furnace, template=filter_template, next_due_date=date(2024, 3, 4))
        inside_block = asyncio.Event()

        async def failing_block():
            async with db_client.transaction():
                await db_client.update_record(
                    collection="recurring_schedules",
                    record_id=schedule["id"],
                    data={"next_due_date": date(2030, 1, 1)},
                )
                inside_block.set()
                await asyncio.sleep(0.05)
                msg = "abort after partial write"
                raise RuntimeError(msg)

        async def concurrent_write():
            await inside_block.wait()
            return await task_service.create_task(home_id=home.id, title="Unrelated", due_date=date(2024, 3, 10))

        block_result, task = await asyncio.gather(failing_block(), concurrent_write(), return_exceptions=True)

        assert isinstance(block_result, RuntimeError)
        assert task.title == "Unrelated"
        stored = await db_client.get_record(collection="recurring_schedules", record_id=schedule["id"])
        assert stored["next_due_date"] == "2024-03-04"

    async def test_concurrent_read_does_not_see_uncommitted_rows(self, db):
        """Reads from other coroutines wait for the open block to finish."""
        inside_block = asyncio.Event()

        async def failing_block():
            async with db_client.transaction():
                await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "Draft"})
                inside_block.set()
                await asyncio.sleep(0.05)
                msg = "abort"
                raise RuntimeError(msg)

        async def concurrent_count():
            await inside_block.wait()
            return await db_client.count_records(collection="homes")

        _, count = await asyncio.gather(failing_block(), concurrent_count(), return_exceptions=True)

        assert count == 0


@pytest.mark.unit
class TestDeleteRecords:
    """Tests for set-based deletes."""

    async def test_deletes_only_matching_rows(self, db):
        """Rows outside the filter are kept."""
        await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "A"})
        await db_client.create_record(collection="homes", data={"user_id": "u1", "name": "B"})
        await db_client.create_record(collection="homes", data={"user_id": "u2", "name": "C"})

        deleted = await db_client.delete_records(collection="homes", filter_query='user_id = "u1"')

        assert deleted == 2
        assert await db_client.count_records(collection="homes") == 1

    async def test_requires_filter(self, db):
        """An unfiltered delete is refused."""
        with pytest.raises(ValueError, match="requires a filter"):
            await db_client.delete_records(collection="homes", filter_query="")
