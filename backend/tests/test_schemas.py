"""
AtlasPM Backend — Schema Tests
===============================

Pure Pydantic checks, no database.
"""

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from atlaspm.schemas.client import ClientUpdate
from atlaspm.schemas.common import patch_fields
from atlaspm.schemas.project import PointGeometry, ProjectCreate, ProjectUpdate
from atlaspm.schemas.timesheet import TimesheetQuery
from atlaspm.schemas.user import UserCreate


class TestPatchFields:

    def test_nulls_and_unsent_fields_dropped(self):
        changes, expected = patch_fields(ClientUpdate(name="Acme", note=None, version=3))
        assert changes == {"name": "Acme"}
        assert expected == 3

    def test_version_optional(self):
        changes, expected = patch_fields(ClientUpdate(address="1 Quay St"))
        assert changes == {"address": "1 Quay St"}
        assert expected is None


class TestProjectSchemas:

    def test_duplicate_client_names_rejected(self):
        with pytest.raises(PydanticValidationError):
            ProjectCreate(
                project_id=1, proposal_id="P1", name="n", status="s", client_names=["Acme", "Acme"]
            )

    def test_empty_client_names_rejected_on_update(self):
        with pytest.raises(PydanticValidationError):
            ProjectUpdate(client_names=[])

    def test_empty_assignments_allowed_on_update(self):
        changes, _ = patch_fields(ProjectUpdate(assignments=[]))
        assert changes == {"assignments": []}

    def test_duplicate_assignments_rejected(self):
        with pytest.raises(PydanticValidationError):
            ProjectUpdate(
                assignments=[
                    {"employee_id": "abc12345", "role_id": 1},
                    {"employee_id": "abc12345", "role_id": 1},
                ]
            )

    @pytest.mark.parametrize("coordinates", [[181, 0], [-181, 0], [0, 91], [0, -91]])
    def test_coordinates_out_of_range(self, coordinates):
        with pytest.raises(PydanticValidationError):
            PointGeometry(type="Point", coordinates=coordinates)

    def test_coordinates_on_boundary(self):
        assert PointGeometry(type="Point", coordinates=[180, -90]).coordinates == [180, -90]


class TestUserSchemas:

    def test_email_lowercased(self):
        user = UserCreate(
            email=" Ada@Example.COM ", first_name="Ada", last_name="L", password="12345678"
        )
        assert user.email == "ada@example.com"

    def test_password_over_72_bytes(self):
        with pytest.raises(PydanticValidationError):
            UserCreate(email="a@b.co", first_name="A", last_name="B", password="é" * 40)


class TestTimesheetQuery:

    def test_inverted_range(self):
        with pytest.raises(PydanticValidationError):
            TimesheetQuery(from_date=date(2024, 3, 10), to_date=date(2024, 3, 1))

    def test_single_day_range(self):
        query = TimesheetQuery(from_date=date(2024, 3, 1), to_date=date(2024, 3, 1))
        assert query.from_date == query.to_date

    def test_empty_strings_are_absent(self):
        assert TimesheetQuery(email="").email is None
