"""Tests for auth permissions."""

import pytest

from edumarket.auth.permissions import (
    UserRole,
    extract_role_claim,
    is_educator,
    resolve_role,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.STUDENT.value == "student"
        assert UserRole.EDUCATOR.value == "educator"

    def test_only_two_roles(self) -> None:
        """Anything beyond student and educator is not a role."""
        assert {role.value for role in UserRole} == {"student", "educator"}


class TestResolveRole:
    """Tests for resolve_role function."""

    @pytest.mark.parametrize("raw", ["educator", "Educator", " EDUCATOR "])
    def test_educator_strings(self, raw: str) -> None:
        """The educator claim resolves regardless of case and padding."""
        assert resolve_role(raw) == UserRole.EDUCATOR

    @pytest.mark.parametrize(
        "raw", [None, "", "student", "admin", "teacher", 1, {"role": "educator"}]
    )
    def test_everything_else_is_student(self, raw: object) -> None:
        """Missing or unknown claims resolve to student."""
        assert resolve_role(raw) == UserRole.STUDENT

    def test_enum_passthrough(self) -> None:
        """Enum values are returned unchanged."""
        assert resolve_role(UserRole.EDUCATOR) is UserRole.EDUCATOR

    def test_is_educator(self) -> None:
        """is_educator accepts enum and raw strings."""
        assert is_educator(UserRole.EDUCATOR) is True
        assert is_educator("educator") is True
        assert is_educator("student") is False


class TestExtractRoleClaim:
    """Tests for extract_role_claim function."""

    def test_top_level_claim(self) -> None:
        """Plain claim names are read directly."""
        assert extract_role_claim({"role": "educator"}, "role") == "educator"

    def test_nested_claim(self) -> None:
        """Dotted paths walk nested objects."""
        payload = {"public_metadata": {"role": "educator"}}
        assert extract_role_claim(payload, "public_metadata.role") == "educator"

    def test_missing_claim(self) -> None:
        """Missing segments return None."""
        assert extract_role_claim({}, "public_metadata.role") is None
        assert extract_role_claim({"public_metadata": "x"}, "public_metadata.role") is None
