"""Tests for the FastAPI dependency boundary."""

from typing import Annotated, Any

import pytest
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from fieldops.core.dependencies import (
    get_access_scope,
    get_caller,
    get_registry,
    require_ac_access,
    to_http_exception,
)
from fieldops.core.errors import AuthorizationError, BatchWriteError, ConfigurationError, UnknownPartitionError
from fieldops.lib.access import AccessScope, Caller, Role


def _app(user: dict[str, Any] | None) -> FastAPI:
    """Mini app whose middleware plays the session layer."""
    app = FastAPI()

    @app.middleware("http")
    async def attach_user(request: Request, call_next):  # type: ignore[no-untyped-def]
        request.state.user = user
        return await call_next(request)

    @app.get("/me")
    async def me(caller: Annotated[Caller, Depends(get_caller)]) -> dict[str, Any]:
        return {"role": caller.role, "assigned_ac": caller.assigned_ac}

    @app.get("/scope")
    async def scope(scope: Annotated[AccessScope, Depends(get_access_scope)]) -> dict[str, Any]:
        return {"visibility": scope.visibility, "ac_key": scope.ac_key}

    @app.get("/acs/{ac_id}/surveys")
    async def surveys(ac_key: Annotated[int, Depends(require_ac_access)]) -> dict[str, int]:
        return {"ac_key": ac_key}

    return app


class TestGetCaller:
    """Tests for get_caller."""

    def test_unauthenticated(self) -> None:
        response = TestClient(_app(None)).get("/me")
        assert response.status_code == 401

    def test_legacy_user_payload(self) -> None:
        response = TestClient(_app({"role": "Assembly CI", "assignedAC": "Thondamuthur"})).get("/me")
        assert response.status_code == 200
        assert response.json() == {"role": "L2", "assigned_ac": 119}


class TestGetAccessScope:
    """Tests for get_access_scope."""

    def test_scoped_user(self) -> None:
        response = TestClient(_app({"role": "L2", "aci_id": 119})).get("/scope")
        assert response.json() == {"visibility": "one", "ac_key": 119}

    def test_user_without_scope(self) -> None:
        response = TestClient(_app({"role": "BoothAgent", "aci_id": 119})).get("/scope")
        assert response.status_code == 403


class TestRequireAcAccess:
    """Tests for the {ac_id} path guard."""

    @pytest.mark.parametrize(
        ("user", "ac_id", "status_code"),
        [
            ({"role": "L2", "aci_id": 119}, "119", 200),
            ({"role": "L2", "aci_id": 119}, "Thondamuthur", 200),
            ({"role": "L2", "aci_id": 119}, "101", 403),
            ({"role": "L2", "aci_id": 119}, "999", 403),
            ({"role": "L0"}, "101", 200),
            ({"role": "L1"}, "999", 404),
            ({"role": "L0"}, "nowhere", 404),
            ({"role": "L9", "aci_id": 119}, "119", 403),
        ],
    )
    def test_guard(self, user: dict[str, Any], ac_id: str, status_code: int) -> None:
        response = TestClient(_app(user)).get(f"/acs/{ac_id}/surveys")
        assert response.status_code == status_code

    def test_returns_canonical_key(self) -> None:
        response = TestClient(_app({"role": "L0"})).get("/acs/thondamuthur/surveys")
        assert response.json() == {"ac_key": 119}

    def test_direct_call(self) -> None:
        caller = Caller(role=Role.AC_INCHARGE, assigned_ac=119)
        assert require_ac_access("119", caller, get_registry()) == 119
        with pytest.raises(HTTPException) as exc_info:
            require_ac_access("101", caller, get_registry())
        assert exc_info.value.status_code == 403


class TestToHttpException:
    """Tests for error mapping."""

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (AuthorizationError("denied"), 403),
            (UnknownPartitionError(999), 404),
            (ConfigurationError("bad kind"), 400),
            (BatchWriteError("voters_119", "boom"), 500),
        ],
    )
    def test_mapping(self, error: Exception, status_code: int) -> None:
        assert to_http_exception(error).status_code == status_code  # type: ignore[arg-type]

    def test_unknown_partition_detail(self) -> None:
        assert to_http_exception(UnknownPartitionError(999)).detail == "No such AC: 999"
