"""
AtlasPM Backend — Role Service
===============================

What:  CRUD for roles. Names are unique; a clash is reported as a
       DuplicateKeyError on `name` rather than a server error.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import NotFoundError
from atlaspm.models.role import Role
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.schemas.role import RoleCreate, RoleUpdate
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

SORT_COLUMNS = {"id": Role.id, "name": Role.name}
DUPLICATES = {"name": "a role with this name already exists"}


class RoleService:

    @store_operation("role", duplicates=DUPLICATES)
    async def create_role(self, db: AsyncSession, payload: RoleCreate) -> Role:
        async with db.begin():
            role = Role(name=payload.name)
            db.add(role)
            await db.flush()
        logger.info("Role created: %s (%s)", role.id, role.name)
        return role

    @store_operation("role")
    async def get_role(self, db: AsyncSession, role_id: int) -> Role:
        async with db.begin():
            role = await db.get(Role, role_id)
        if role is None:
            raise NotFoundError(resource="role", resource_id=role_id)
        return role

    @store_operation("role")
    async def list_roles(
        self, db: AsyncSession, params: ListParams, name: Optional[str] = None
    ) -> Tuple[List[Role], PageMetadata]:
        stmt = select(Role)
        if name:
            stmt = stmt.where(Role.name.ilike(f"%{name}%"))
        async with db.begin():
            return await paginate(db, stmt, params, SORT_COLUMNS, "id", Role.id)

    @store_operation("role", duplicates=DUPLICATES)
    async def update_role(self, db: AsyncSession, role_id: int, payload: RoleUpdate) -> Role:
        changes, expected = patch_fields(payload)
        async with UpdateOrchestrator(db, "role") as op:
            role = await db.get(Role, role_id)
            if role is None:
                raise NotFoundError(resource="role", resource_id=role_id)
            await op.apply(Role, role_id, expected or role.version, changes)
            await db.refresh(role)
        logger.info("Role %s updated to version %d", role_id, role.version)
        return role

    @store_operation("role")
    async def delete_role(self, db: AsyncSession, role_id: int) -> None:
        async with db.begin():
            result = await db.execute(delete(Role).where(Role.id == role_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="role", resource_id=role_id)
        logger.info("Role %s deleted", role_id)


role_service = RoleService()
