"""
AtlasPM Backend — Client Service Tests
=======================================

What we test:
    ✅ Rename at the current version bumps it; the stale retry conflicts
    ✅ Omitted version updates against whatever is stored
    ✅ Unknown client ids are NotFoundErrors
"""

import pytest

from atlaspm.exceptions import EditConflictError, NotFoundError
from atlaspm.schemas.client import ClientCreate, ClientUpdate
from atlaspm.services.client_service import client_service


async def create(database, name="Acme"):
    async with database.session() as db:
        return await client_service.create_client(db, ClientCreate(name=name))


async def update(database, client_id, **fields):
    async with database.session() as db:
        return await client_service.update_client(db, client_id, ClientUpdate(**fields))


class TestUpdateClient:

    @pytest.mark.asyncio
    async def test_second_rename_at_same_version_conflicts(self, database):
        client = await create(database)

        renamed = await update(database, client.id, name="Acme Pty", version=1)
        assert renamed.version == 2

        with pytest.raises(EditConflictError):
            await update(database, client.id, name="Acme Ltd", version=1)

        async with database.session() as db:
            current = await client_service.get_client(db, client.id)
        assert current.name == "Acme Pty"
        assert current.version == 2

    @pytest.mark.asyncio
    async def test_omitted_version_uses_current(self, database):
        client = await create(database)
        await update(database, client.id, address="1 Quay St")
        updated = await update(database, client.id, note="front desk")
        assert updated.version == 3
        assert updated.address == "1 Quay St"

    @pytest.mark.asyncio
    async def test_missing_client(self, database):
        with pytest.raises(NotFoundError):
            await update(database, 99999, name="Nobody")
