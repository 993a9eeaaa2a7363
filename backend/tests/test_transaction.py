"""
AtlasPM Backend — Store Boundary Tests
=======================================

What we test:
    ✅ Unique violations (PostgreSQL and SQLite wording) → DuplicateKeyError
    ✅ Foreign-key violations → BadRequestError
    ✅ Anything else → StoreError
    ✅ The deadline turns a slow call into StoreError
    ✅ Our own errors pass through untouched
"""

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from atlaspm.exceptions import (
    BadRequestError,
    DuplicateKeyError,
    EditConflictError,
    StoreError,
)
from atlaspm.services.transaction import classify_integrity_error, store_operation

DUPLICATES = {
    "project_id": "a project with this project_id already exists",
    "proposal_id": "a project with this proposal_id already exists",
}


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO project ...", {}, Exception(message))


class TestClassifyIntegrityError:

    def test_postgres_unique_violation(self):
        exc = integrity_error(
            'duplicate key value violates unique constraint "project_project_id_key"'
        )
        classified = classify_integrity_error(exc, "project", DUPLICATES)
        assert isinstance(classified, DuplicateKeyError)
        assert classified.field == "project_id"
        assert classified.message == DUPLICATES["project_id"]

    def test_sqlite_unique_violation(self):
        exc = integrity_error("UNIQUE constraint failed: project.proposal_id")
        classified = classify_integrity_error(exc, "project", DUPLICATES)
        assert isinstance(classified, DuplicateKeyError)
        assert classified.field == "proposal_id"
        assert classified.context["fields"] == {"proposal_id": DUPLICATES["proposal_id"]}

    def test_unique_violation_on_unlisted_column_is_store_error(self):
        exc = integrity_error("UNIQUE constraint failed: project.name")
        assert isinstance(classify_integrity_error(exc, "project", DUPLICATES), StoreError)

    def test_foreign_key_violation(self):
        exc = integrity_error("FOREIGN KEY constraint failed")
        assert isinstance(classify_integrity_error(exc, "timesheet"), BadRequestError)

    def test_postgres_foreign_key_violation(self):
        exc = integrity_error(
            'update or delete on table "client" violates foreign key constraint '
            '"timesheet_client_id_fkey" on table "timesheet"'
        )
        assert isinstance(classify_integrity_error(exc, "client"), BadRequestError)

    def test_other_integrity_error(self):
        exc = integrity_error("NOT NULL constraint failed: project.name")
        classified = classify_integrity_error(exc, "project", DUPLICATES)
        assert isinstance(classified, StoreError)


class TestStoreOperation:

    @pytest.mark.asyncio
    async def test_deadline_exceeded_is_store_error(self):
        @store_operation("client", timeout=0.01)
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(StoreError, match="did not respond in time"):
            await slow()

    @pytest.mark.asyncio
    async def test_own_errors_pass_through(self):
        @store_operation("client")
        async def conflicting():
            raise EditConflictError(resource="client", resource_id=1, expected_version=1)

        with pytest.raises(EditConflictError):
            await conflicting()

    @pytest.mark.asyncio
    async def test_integrity_error_is_classified(self):
        @store_operation("project", duplicates=DUPLICATES)
        async def insert():
            raise integrity_error("UNIQUE constraint failed: project.project_id")

        with pytest.raises(DuplicateKeyError) as exc_info:
            await insert()
        assert exc_info.value.field == "project_id"

    @pytest.mark.asyncio
    async def test_driver_error_is_store_error(self):
        @store_operation("client")
        async def broken():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        with pytest.raises(StoreError) as exc_info:
            await broken()
        assert exc_info.value.context["error_type"] == "OperationalError"

    @pytest.mark.asyncio
    async def test_result_is_returned(self):
        @store_operation("client")
        async def fine(x):
            return x * 2

        assert await fine(21) == 42
