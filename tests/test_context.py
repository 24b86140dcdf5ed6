"""Tests for caller extraction from request headers."""

from __future__ import annotations

import pytest
from acqprotect import CallerContext, InvalidRequestError, caller_from_headers, parse_permissions
from pydantic import ValidationError


class TestParsePermissions:
    def test_json_array(self) -> None:
        assert parse_permissions('["a.get", "b.put"]') == frozenset({"a.get", "b.put"})

    def test_missing_or_blank_grants_nothing(self) -> None:
        assert parse_permissions(None) == frozenset()
        assert parse_permissions("") == frozenset()

    def test_malformed_json(self) -> None:
        with pytest.raises(InvalidRequestError, match="Malformed"):
            parse_permissions("[not json")

    def test_not_an_array(self) -> None:
        with pytest.raises(InvalidRequestError, match="JSON array"):
            parse_permissions('{"a": 1}')


class TestCallerFromHeaders:
    def test_header_names_are_case_insensitive(self) -> None:
        caller = caller_from_headers(
            {
                "X-Okapi-User-Id": "user-1",
                "X-Okapi-Permissions": '["organizations.acquisitions-units-assignments.manage"]',
            }
        )
        assert caller.user_id == "user-1"
        assert caller.has_permission("organizations.acquisitions-units-assignments.manage")

    def test_no_permissions_header(self) -> None:
        caller = caller_from_headers({"x-okapi-user-id": "user-1"})
        assert caller.granted_permissions == frozenset()

    def test_missing_user_id(self) -> None:
        with pytest.raises(InvalidRequestError, match="x-okapi-user-id"):
            caller_from_headers({"x-okapi-permissions": "[]"})

    def test_blank_user_id(self) -> None:
        with pytest.raises(InvalidRequestError):
            caller_from_headers({"x-okapi-user-id": "  "})

    @pytest.mark.parametrize("user_id", ["a or b", "user-1)", 'x"y', "u==1"])
    def test_user_id_that_would_alter_query_rejected(self, user_id) -> None:
        with pytest.raises(InvalidRequestError, match="Malformed"):
            caller_from_headers({"x-okapi-user-id": user_id})


class TestCallerContext:
    def test_uuid_user_id_accepted(self) -> None:
        caller = CallerContext(user_id="9f5d2c1e-6b0a-4f3e-8a7d-1c2b3a4d5e6f")
        assert caller.user_id == "9f5d2c1e-6b0a-4f3e-8a7d-1c2b3a4d5e6f"

    @pytest.mark.parametrize("user_id", ["", "user 1", "a or b", "(x)"])
    def test_user_id_must_be_single_query_term(self, user_id) -> None:
        with pytest.raises(ValidationError):
            CallerContext(user_id=user_id)
