"""
AtlasPM Backend — Association Synchronizer
===========================================

What:  Reconciles a join table to a desired set of targets for one owner row.
Why:   Association sets are fully determined by the latest update call, not
       accumulated. Sending clients=["Acme"] after ["Acme", "Skynet"] must
       leave exactly one link behind.
How:   1. Read the targets currently stored for the owner
       2. DELETE the rows present in storage but absent from the desired set
       3. INSERT the rows present in the desired set but absent from storage,
          with ON CONFLICT DO NOTHING so a concurrent identical insert is a
          no-op, not an error
       Runs inside the caller's transaction; it never commits.

`None` versus empty:
    desired=None  → the caller omitted the field: leave associations untouched
    desired=[]    → the caller explicitly cleared them: delete every link

Targets can be single values (client ids) or tuples (assignment rows keyed
by (employee_id, role_id)); `Association.target_columns` says which.
"""

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional, Sequence, Tuple

from sqlalchemy import Table, and_, delete, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Association:
    """
    Describes one join table from the owner's point of view.

    Attributes:
        name:           Label used in logs and results ("clients", "assignments")
        table:          The join Table
        owner_column:   Column holding the owner's key
        target_columns: Column(s) identifying the associated row(s)
    """
    name: str
    table: Table
    owner_column: str
    target_columns: Tuple[str, ...]

    @property
    def is_composite(self) -> bool:
        return len(self.target_columns) > 1

    def normalize(self, targets: Iterable[Any]) -> FrozenSet[Any]:
        if self.is_composite:
            return frozenset(tuple(t) for t in targets)
        return frozenset(targets)


@dataclass(frozen=True)
class ReconcileResult:
    association: str
    added: FrozenSet[Any]
    removed: FrozenSet[Any]
    skipped: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def _insert_ignoring_duplicates(session: AsyncSession, table: Table):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing()
    raise NotImplementedError(f"Idempotent insert is not supported on {dialect}")


async def current_targets(
    session: AsyncSession, assoc: Association, owner_id: Any
) -> FrozenSet[Any]:
    """Targets stored for `owner_id` right now."""
    cols = [assoc.table.c[name] for name in assoc.target_columns]
    stmt = select(*cols).where(assoc.table.c[assoc.owner_column] == owner_id)
    rows = (await session.execute(stmt)).all()
    if assoc.is_composite:
        return frozenset(tuple(row) for row in rows)
    return frozenset(row[0] for row in rows)


def _match_targets(assoc: Association, targets: Sequence[Any]):
    if not assoc.is_composite:
        return assoc.table.c[assoc.target_columns[0]].in_(targets)
    cols = [assoc.table.c[name] for name in assoc.target_columns]
    return or_(
        *(and_(*(col == value for col, value in zip(cols, t))) for t in targets)
    )


async def reconcile(
    session: AsyncSession,
    assoc: Association,
    owner_id: Any,
    desired: Optional[Iterable[Any]],
) -> ReconcileResult:
    """
    Make the join rows for `owner_id` equal `desired`.

    Args:
        session: Session with an open transaction
        assoc: Which join table to reconcile
        owner_id: Key of the owner row
        desired: Target set; None means "leave untouched"

    Returns:
        ReconcileResult describing what was added and removed

    Raises:
        sqlalchemy.exc.IntegrityError: a desired target does not exist (FK)
    """
    if desired is None:
        return ReconcileResult(assoc.name, frozenset(), frozenset(), skipped=True)

    wanted = assoc.normalize(desired)
    stored = await current_targets(session, assoc, owner_id)

    stale = sorted(stored - wanted, key=repr)
    missing = sorted(wanted - stored, key=repr)

    if stale:
        await session.execute(
            delete(assoc.table).where(
                assoc.table.c[assoc.owner_column] == owner_id,
                _match_targets(assoc, stale),
            )
        )

    if missing:
        rows = []
        for target in missing:
            values = target if assoc.is_composite else (target,)
            row = {assoc.owner_column: owner_id}
            row.update(zip(assoc.target_columns, values))
            rows.append(row)
        await session.execute(_insert_ignoring_duplicates(session, assoc.table), rows)

    if stale or missing:
        logger.debug(
            "Reconciled %s for %s: +%d -%d", assoc.name, owner_id, len(missing), len(stale)
        )

    return ReconcileResult(assoc.name, frozenset(missing), frozenset(stale))
