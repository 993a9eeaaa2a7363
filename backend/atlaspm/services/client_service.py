"""
AtlasPM Backend — Client Service
=================================

What:  CRUD for clients.
How:   Every method opens its own transaction and runs under the store
       deadline (`store_operation`). Updates run inside an
       `UpdateOrchestrator` (version guard + commit), so two people
       renaming the same client cannot overwrite each other.

Error Handling Strategy:
    NotFoundError      → client id does not exist
    EditConflictError  → stale version on update
    StoreError         → anything else the database reports
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import NotFoundError
from atlaspm.models.client import Client
from atlaspm.schemas.client import ClientCreate, ClientUpdate
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

SORT_COLUMNS = {"id": Client.id, "name": Client.name}


class ClientService:
    """Stateless service; the session is passed to every call."""

    @store_operation("client")
    async def create_client(self, db: AsyncSession, payload: ClientCreate) -> Client:
        async with db.begin():
            client = Client(**payload.model_dump())
            db.add(client)
            await db.flush()
        logger.info("Client created: %s (%s)", client.id, client.name)
        return client

    @store_operation("client")
    async def get_client(self, db: AsyncSession, client_id: int) -> Client:
        """
        Raises:
            NotFoundError: No client with this id
        """
        async with db.begin():
            client = await db.get(Client, client_id)
        if client is None:
            raise NotFoundError(resource="client", resource_id=client_id)
        return client

    @store_operation("client")
    async def list_clients(
        self,
        db: AsyncSession,
        params: ListParams,
        name: Optional[str] = None,
    ) -> Tuple[List[Client], PageMetadata]:
        stmt = select(Client)
        if name:
            stmt = stmt.where(Client.name.ilike(f"%{name}%"))
        async with db.begin():
            return await paginate(db, stmt, params, SORT_COLUMNS, "id", Client.id)

    @store_operation("client")
    async def update_client(
        self, db: AsyncSession, client_id: int, payload: ClientUpdate
    ) -> Client:
        """
        Apply a partial update under the version guard.

        Args:
            db: Session with no open transaction
            client_id: Client to update
            payload: Fields the caller sent; `version` defaults to the one read

        Raises:
            NotFoundError: Client does not exist
            EditConflictError: Version no longer matches
        """
        changes, expected = patch_fields(payload)

        async with UpdateOrchestrator(db, "client") as op:
            client = await db.get(Client, client_id)
            if client is None:
                raise NotFoundError(resource="client", resource_id=client_id)
            await op.apply(Client, client_id, expected or client.version, changes)
            await db.refresh(client)
        logger.info("Client %s updated to version %d", client_id, client.version)
        return client

    @store_operation("client")
    async def delete_client(self, db: AsyncSession, client_id: int) -> None:
        async with db.begin():
            result = await db.execute(delete(Client).where(Client.id == client_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="client", resource_id=client_id)
        logger.info("Client %s deleted", client_id)


client_service = ClientService()
