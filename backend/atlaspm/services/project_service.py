"""
AtlasPM Backend — Project Service
==================================

What:  CRUD for projects, including their client links and assignments.
Why:   The project is the richest resource: one PATCH can rename the
       project, swap its client set and reshuffle who works on it. All of
       that must land together or not at all.
How:   Updates run inside an UpdateOrchestrator:

    ┌──────────────┐   ┌────────────────────┐   ┌───────────────┐   ┌────────────────┐
    │ read project │──▶│ resolve client     │──▶│ version guard │──▶│ reconcile      │
    │ by number    │   │ names, check users │   │ (row update)  │   │ project_client │
    └──────────────┘   │ and roles exist    │   └───────────────┘   │ + assignment   │
                       └────────────────────┘                       └────────────────┘
                                   one transaction, rolled back on any error

Association semantics on update:
    client_names omitted → client links untouched
    assignments omitted  → assignments untouched
    assignments = []     → all assignments removed

Listing:
    Filters (name, status, bbox, project_id, proposal_id, full_address,
    client_name) are OR-combined. No filters returns every project.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import NotFoundError, ValidationError
from atlaspm.models.client import Client
from atlaspm.models.project import Project, assignment, project_client
from atlaspm.models.role import Role
from atlaspm.models.user import AppUser
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.schemas.project import (
    AssignmentInput,
    ProjectAssignment,
    ProjectClient,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from atlaspm.services.associations import Association, reconcile
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

PROJECT_CLIENTS = Association(
    name="clients",
    table=project_client,
    owner_column="project_internal_id",
    target_columns=("client_id",),
)

PROJECT_ASSIGNMENTS = Association(
    name="assignments",
    table=assignment,
    owner_column="project_internal_id",
    target_columns=("employee_id", "role_id"),
)

SORT_COLUMNS = {
    "project_id": Project.project_id,
    "name": Project.name,
    "status": Project.status,
}

DUPLICATES = {
    "project_id": "a project with this project_id already exists",
    "proposal_id": "a project with this proposal_id already exists",
}


@dataclass(frozen=True)
class ProjectFilters:
    name: Optional[str] = None
    status: Optional[str] = None
    bbox: Optional[Sequence[float]] = None
    project_id: Optional[int] = None
    proposal_id: Optional[str] = None
    full_address: Optional[str] = None
    client_name: Optional[str] = None

    def conditions(self) -> list:
        conds = []
        if self.name:
            conds.append(Project.name.ilike(f"%{self.name}%"))
        if self.status:
            conds.append(Project.status.ilike(f"%{self.status}%"))
        if self.bbox is not None:
            if len(self.bbox) != 4:
                raise ValidationError(field="bbox", message="must have 4 coordinates")
            min_lng, min_lat, max_lng, max_lat = self.bbox
            lng = Project.feature[("geometry", "coordinates", 0)].as_float()
            lat = Project.feature[("geometry", "coordinates", 1)].as_float()
            conds.append(
                and_(lng >= min_lng, lng <= max_lng, lat >= min_lat, lat <= max_lat)
            )
        if self.project_id:
            conds.append(Project.project_id == self.project_id)
        if self.proposal_id:
            conds.append(Project.proposal_id.ilike(f"%{self.proposal_id}%"))
        if self.full_address:
            address = Project.feature[("properties", "full_address")].as_string()
            conds.append(address.ilike(f"%{self.full_address}%"))
        if self.client_name:
            conds.append(
                exists()
                .where(project_client.c.project_internal_id == Project.internal_id)
                .where(project_client.c.client_id == Client.id)
                .where(Client.name.ilike(f"%{self.client_name}%"))
            )
        return conds


class ProjectService:
    """
    Stateless; every public method takes the session explicitly and owns
    exactly one transaction.
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    async def _find(self, db: AsyncSession, project_id: int) -> Project:
        result = await db.execute(select(Project).where(Project.project_id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError(resource="project", resource_id=project_id)
        return project

    async def _resolve_clients(self, db: AsyncSession, names: List[str]) -> List[int]:
        """
        Map client names to ids, in the order given.

        Raises:
            ValidationError: on `client_names` for the first unknown name
        """
        result = await db.execute(
            select(Client.name, Client.id).where(Client.name.in_(names)).order_by(Client.id)
        )
        by_name: Dict[str, int] = {}
        for name, client_id in result.all():
            by_name.setdefault(name, client_id)

        missing = [n for n in names if n not in by_name]
        if missing:
            raise ValidationError(
                field="client_names",
                message=f"{missing[0]} cannot be found",
            )
        return [by_name[n] for n in names]

    async def _check_assignments(
        self, db: AsyncSession, entries: List[AssignmentInput]
    ) -> List[Tuple[str, int]]:
        pairs = [(a.employee_id, a.role_id) for a in entries]
        if not pairs:
            return pairs

        employee_ids = {p[0] for p in pairs}
        role_ids = {p[1] for p in pairs}
        found_users = set(
            (await db.execute(select(AppUser.id).where(AppUser.id.in_(employee_ids)))).scalars()
        )
        found_roles = set(
            (await db.execute(select(Role.id).where(Role.id.in_(role_ids)))).scalars()
        )

        errors = {}
        unknown_users = sorted(employee_ids - found_users)
        unknown_roles = sorted(role_ids - found_roles)
        if unknown_users:
            errors["assignments"] = f"employee {unknown_users[0]} cannot be found"
        elif unknown_roles:
            errors["assignments"] = f"role {unknown_roles[0]} cannot be found"
        if errors:
            raise ValidationError(fields=errors)
        return pairs

    async def _embeds(
        self, db: AsyncSession, internal_ids: Iterable[int]
    ) -> Tuple[Dict[int, List[ProjectClient]], Dict[int, List[ProjectAssignment]]]:
        """Clients and assignments for a batch of projects, two queries total."""
        ids = list(internal_ids)
        clients: Dict[int, List[ProjectClient]] = defaultdict(list)
        assignments: Dict[int, List[ProjectAssignment]] = defaultdict(list)
        if not ids:
            return clients, assignments

        client_rows = await db.execute(
            select(project_client.c.project_internal_id, Client)
            .join(Client, Client.id == project_client.c.client_id)
            .where(project_client.c.project_internal_id.in_(ids))
            .order_by(Client.id)
        )
        for owner, client in client_rows.all():
            clients[owner].append(
                ProjectClient(
                    client_id=client.id,
                    client_name=client.name,
                    client_address=client.address,
                    client_logo=client.logo_url,
                    client_note=client.note,
                )
            )

        assignment_rows = await db.execute(
            select(
                assignment.c.project_internal_id,
                assignment.c.employee_id,
                AppUser.email,
                assignment.c.role_id,
                Role.name,
            )
            .join(AppUser, AppUser.id == assignment.c.employee_id)
            .join(Role, Role.id == assignment.c.role_id)
            .where(assignment.c.project_internal_id.in_(ids))
            .order_by(assignment.c.employee_id, assignment.c.role_id)
        )
        for owner, employee_id, email, role_id, role_name in assignment_rows.all():
            assignments[owner].append(
                ProjectAssignment(
                    employee_id=employee_id,
                    employee_email=email,
                    role_id=role_id,
                    role_name=role_name,
                )
            )
        return clients, assignments

    @staticmethod
    def _to_response(
        project: Project,
        clients: List[ProjectClient],
        assignments: List[ProjectAssignment],
    ) -> ProjectResponse:
        return ProjectResponse(
            project_id=project.project_id,
            proposal_id=project.proposal_id,
            name=project.name,
            status=project.status,
            feature=project.feature,
            note=project.note,
            images=project.images,
            clients=clients,
            assignments=assignments,
            version=project.version,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )

    async def _load_response(self, db: AsyncSession, project: Project) -> ProjectResponse:
        clients, assignments = await self._embeds(db, [project.internal_id])
        return self._to_response(
            project, clients[project.internal_id], assignments[project.internal_id]
        )

    # ── Operations ────────────────────────────────────────────────────────

    @store_operation("project", duplicates=DUPLICATES)
    async def create_project(self, db: AsyncSession, payload: ProjectCreate) -> ProjectResponse:
        """
        Insert a project with its client links and assignments.

        Args:
            db: Async database session (no open transaction)
            payload: Validated create body

        Returns:
            ProjectResponse with version 1 and embedded clients/assignments

        Raises:
            ValidationError: Unknown client name, employee or role
            DuplicateKeyError: project_id or proposal_id already used
        """
        async with db.begin():
            client_ids = await self._resolve_clients(db, payload.client_names)
            pairs = await self._check_assignments(db, payload.assignments or [])

            project = Project(
                **payload.model_dump(exclude={"client_names", "assignments"}),
            )
            db.add(project)
            await db.flush()

            await reconcile(db, PROJECT_CLIENTS, project.internal_id, client_ids)
            await reconcile(db, PROJECT_ASSIGNMENTS, project.internal_id, pairs)

            response = await self._load_response(db, project)

        logger.info(
            "Project %s created with %d client(s)", project.project_id, len(client_ids)
        )
        return response

    @store_operation("project")
    async def get_project(self, db: AsyncSession, project_id: int) -> ProjectResponse:
        """
        Raises:
            NotFoundError: No project with this number
        """
        async with db.begin():
            project = await self._find(db, project_id)
            return await self._load_response(db, project)

    @store_operation("project")
    async def list_projects(
        self,
        db: AsyncSession,
        params: ListParams,
        filters: Optional[ProjectFilters] = None,
    ) -> Tuple[List[ProjectResponse], PageMetadata]:
        stmt = select(Project)
        conds = (filters or ProjectFilters()).conditions()
        if conds:
            stmt = stmt.where(or_(*conds))

        async with db.begin():
            projects, metadata = await paginate(
                db, stmt, params, SORT_COLUMNS, "project_id", Project.internal_id
            )
            clients, assignments = await self._embeds(db, (p.internal_id for p in projects))

        return [
            self._to_response(p, clients[p.internal_id], assignments[p.internal_id])
            for p in projects
        ], metadata

    @store_operation("project", duplicates=DUPLICATES)
    async def update_project(
        self, db: AsyncSession, project_id: int, payload: ProjectUpdate
    ) -> ProjectResponse:
        """
        Partial update of a project and its associations, atomically.

        Args:
            db: Async database session (no open transaction)
            project_id: External number of the project to update
            payload: Fields to change; `version` is the caller's expected version

        Returns:
            ProjectResponse reflecting the committed state

        Raises:
            NotFoundError: No project with this number
            ValidationError: Unknown client name, employee or role
            EditConflictError: Version no longer matches
            DuplicateKeyError: New project_id / proposal_id already used
        """
        changes, expected = patch_fields(payload)
        client_names = changes.pop("client_names", None)
        assignment_entries = changes.pop("assignments", None)

        async with UpdateOrchestrator(db, "project") as op:
            project = await self._find(db, project_id)

            client_ids = None
            if client_names is not None:
                client_ids = await self._resolve_clients(db, client_names)
            pairs = None
            if assignment_entries is not None:
                pairs = await self._check_assignments(
                    db, [AssignmentInput(**entry) for entry in assignment_entries]
                )

            await op.apply(
                Project,
                project.internal_id,
                expected or project.version,
                changes,
                associations={PROJECT_CLIENTS: client_ids, PROJECT_ASSIGNMENTS: pairs},
            )
            await db.refresh(project)
            response = await self._load_response(db, project)

        logger.info("Project %s updated to version %d", response.project_id, response.version)
        return response

    @store_operation("project")
    async def delete_project(self, db: AsyncSession, project_id: int) -> None:
        """Delete a project; its client links and assignments cascade."""
        async with db.begin():
            result = await db.execute(delete(Project).where(Project.project_id == project_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="project", resource_id=project_id)
        logger.info("Project %s deleted", project_id)


project_service = ProjectService()
