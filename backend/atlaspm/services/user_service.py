"""
AtlasPM Backend — User Service
===============================

What:  CRUD for employees (`appuser` rows).
Why separate from auth:
    Login, tokens and activation mail live outside this service. Here a
    user is just a row with a hashed password, an activation flag and the
    usual version guard.

Duplicate emails:
    Emails are lowercased by the schema, so the unique index on `email`
    rejects "Ada@x.io" when "ada@x.io" exists. The clash surfaces as a
    DuplicateKeyError on `email` for both create and update.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import NotFoundError
from atlaspm.models.user import AppUser
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.schemas.user import UserCreate, UserUpdate
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.passwords import hash_password
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "id": AppUser.id,
    "email": AppUser.email,
    "first_name": AppUser.first_name,
    "last_name": AppUser.last_name,
}
DUPLICATES = {
    "email": "a user with this email address already exists",
    "id": "a user with this id already exists",
}


class UserService:

    @store_operation("appuser", duplicates=DUPLICATES)
    async def create_user(self, db: AsyncSession, payload: UserCreate) -> AppUser:
        """
        Create a user with a bcrypt-hashed password.

        The password is hashed before the transaction opens; hashing is
        deliberately slow and must not hold a connection.
        """
        password_hash = await hash_password(payload.password)
        async with db.begin():
            user = AppUser(
                email=payload.email,
                first_name=payload.first_name,
                last_name=payload.last_name,
                password_hash=password_hash,
                activated=payload.activated,
            )
            db.add(user)
            await db.flush()
        logger.info("User created: %s", user.id)
        return user

    @store_operation("appuser")
    async def get_user(self, db: AsyncSession, user_id: str) -> AppUser:
        async with db.begin():
            user = await db.get(AppUser, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    @store_operation("appuser")
    async def list_users(
        self,
        db: AsyncSession,
        params: ListParams,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Tuple[List[AppUser], PageMetadata]:
        """Filters are OR-combined substring matches; none means everyone."""
        conditions = []
        if email:
            conditions.append(AppUser.email.ilike(f"%{email}%"))
        if first_name:
            conditions.append(AppUser.first_name.ilike(f"%{first_name}%"))
        if last_name:
            conditions.append(AppUser.last_name.ilike(f"%{last_name}%"))

        stmt = select(AppUser)
        if conditions:
            stmt = stmt.where(or_(*conditions))
        async with db.begin():
            return await paginate(db, stmt, params, SORT_COLUMNS, "id", AppUser.id)

    @store_operation("appuser", duplicates=DUPLICATES)
    async def update_user(self, db: AsyncSession, user_id: str, payload: UserUpdate) -> AppUser:
        """
        Raises:
            NotFoundError: No such user
            EditConflictError: Version no longer matches
            DuplicateKeyError: New email already taken
        """
        changes, expected = patch_fields(payload)
        if "password" in changes:
            changes["password_hash"] = await hash_password(changes.pop("password"))

        async with UpdateOrchestrator(db, "user") as op:
            user = await db.get(AppUser, user_id)
            if user is None:
                raise NotFoundError(resource="user", resource_id=user_id)
            await op.apply(AppUser, user_id, expected or user.version, changes)
            await db.refresh(user)
        logger.info("User %s updated to version %d", user_id, user.version)
        return user

    @store_operation("appuser")
    async def delete_user(self, db: AsyncSession, user_id: str) -> None:
        async with db.begin():
            result = await db.execute(delete(AppUser).where(AppUser.id == user_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="user", resource_id=user_id)
        logger.info("User %s deleted", user_id)


user_service = UserService()
