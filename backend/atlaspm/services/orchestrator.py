"""
AtlasPM Backend — Transactional Update Orchestrator
====================================================

What:  Runs the version guard and every association reconciliation for one
       entity inside a single transaction.
Why:   A project whose row says version 5 while its client links still show
       version 4's set must never be observable. Either the version bump and
       all link changes commit together, or none of them do.
How:   `UpdateOrchestrator` is an async context manager owning the
       transaction:

           async with UpdateOrchestrator(db, "project") as op:
               project = await load_project(db, 24001)        # same transaction
               await op.apply(Project, project.internal_id, expected_version,
                              values={"name": "New name"},
                              associations={PROJECT_CLIENTS: [1, 2]})

       Leaving the block normally commits; any exception rolls back and
       propagates untouched, so an EditConflictError stays an
       EditConflictError all the way to the HTTP layer.

State machine (per update call):

    STARTED ──▶ VERSION_CHECKED ──▶ ASSOCIATIONS_RECONCILED ──▶ COMMITTED
       │               │                       │
       └───────────────┴───────────────────────┴──▶ ROLLED_BACK

No retries: after a conflict the client re-reads and resubmits.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.services.associations import Association, ReconcileResult, reconcile
from atlaspm.services.versioning import VersionStamp, guarded_update

logger = logging.getLogger(__name__)


class UpdateState(str, enum.Enum):
    STARTED = "started"
    VERSION_CHECKED = "version_checked"
    ASSOCIATIONS_RECONCILED = "associations_reconciled"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


_TERMINAL = {UpdateState.COMMITTED, UpdateState.ROLLED_BACK}


@dataclass
class UpdateOutcome:
    """Result of one orchestrated update, filled in as the call progresses."""
    resource: str
    state: UpdateState = UpdateState.STARTED
    stamp: Optional[VersionStamp] = None
    reconciled: List[ReconcileResult] = field(default_factory=list)

    @property
    def version(self) -> Optional[int]:
        return self.stamp.version if self.stamp else None

    @property
    def updated_at(self) -> Optional[datetime]:
        return self.stamp.updated_at if self.stamp else None


class UpdateOrchestrator:
    """
    Transaction scope for one entity update.

    The context manager begins the transaction on entry. `apply()` may be
    called once inside it. Reads performed between entry and `apply()` see
    the same transaction, so validation lookups and the write are consistent.
    """

    def __init__(self, session: AsyncSession, resource: str):
        self.session = session
        self.outcome = UpdateOutcome(resource=resource)
        self._tx = None
        self._applied = False

    @property
    def state(self) -> UpdateState:
        return self.outcome.state

    def _transition(self, new_state: UpdateState) -> None:
        logger.debug(
            "%s update: %s -> %s", self.outcome.resource, self.outcome.state.value, new_state.value
        )
        self.outcome.state = new_state

    async def __aenter__(self) -> "UpdateOrchestrator":
        self._tx = await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                await self._tx.commit()
            except BaseException:
                # serialization failure, dropped connection, ...
                try:
                    await self._tx.rollback()
                finally:
                    self._transition(UpdateState.ROLLED_BACK)
                raise
            if self._applied:
                self._transition(UpdateState.COMMITTED)
            return False

        await self._tx.rollback()
        if self.outcome.state not in _TERMINAL:
            self._transition(UpdateState.ROLLED_BACK)
        # never swallow: the original error kind must reach the caller
        return False

    async def apply(
        self,
        model,
        pk_value: Any,
        expected_version: int,
        values: Optional[Mapping[str, Any]] = None,
        associations: Optional[Mapping[Association, Optional[Any]]] = None,
    ) -> UpdateOutcome:
        """
        Version-guarded row update followed by association reconciliation.

        Args:
            model: Mapped class of the primary row
            pk_value: Primary key of the row
            expected_version: Version the caller last observed
            values: Column changes for the primary row
            associations: Association → desired targets (None = untouched)

        Returns:
            The UpdateOutcome (state ASSOCIATIONS_RECONCILED until the block exits)

        Raises:
            EditConflictError: from the version guard
            Anything the store raises while reconciling
        """
        if self._tx is None:
            raise RuntimeError("UpdateOrchestrator.apply() called outside its context")
        if self._applied:
            raise RuntimeError("UpdateOrchestrator.apply() may only be called once")
        self._applied = True

        try:
            self.outcome.stamp = await guarded_update(
                self.session,
                model,
                pk_value,
                expected_version,
                values,
                resource=self.outcome.resource,
            )
            self._transition(UpdateState.VERSION_CHECKED)

            for assoc, desired in (associations or {}).items():
                result = await reconcile(self.session, assoc, pk_value, desired)
                self.outcome.reconciled.append(result)
            self._transition(UpdateState.ASSOCIATIONS_RECONCILED)
        except BaseException:
            self._transition(UpdateState.ROLLED_BACK)
            raise

        return self.outcome


async def update_entity(
    session: AsyncSession,
    model,
    pk_value: Any,
    expected_version: int,
    values: Optional[Mapping[str, Any]] = None,
    associations: Optional[Mapping[Association, Optional[Any]]] = None,
    resource: Optional[str] = None,
) -> UpdateOutcome:
    """One-shot update for callers that need no reads inside the transaction."""
    async with UpdateOrchestrator(session, resource or model.__tablename__) as op:
        await op.apply(model, pk_value, expected_version, values, associations)
    return op.outcome
