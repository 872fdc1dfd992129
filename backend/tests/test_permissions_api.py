import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from projecthub import config
from projecthub.auth import permissions
from projecthub.auth.rbac_contract import ROLE_PERMISSIONS, Role
from projecthub.config import Settings, get_settings
from projecthub.dependencies import get_capabilities, get_profile_provider
from projecthub.infra.user_profiles import InMemoryUserProfileProvider
from projecthub.main import app
from projecthub.schemas.user_profile import UserProfile
from projecthub.services.capabilities import UserCapabilities

PROFILES = [
    UserProfile(id="u-admin", email="admin@example.com", role="admin"),
    UserProfile(id="u-pm", email="pm@example.com", role="project_manager"),
    UserProfile(id="u-tech", email="tech@example.com", role="technical_team"),
    UserProfile(id="u-fo", email="fo@example.com", role="finance_officer"),
    UserProfile(id="u-legacy", email="legacy@example.com", role="supervisor"),
    UserProfile(id="u-off", email="off@example.com", role="admin", is_active=False),
    UserProfile.model_validate(
        {
            "id": "u-restricted",
            "email": "restricted@example.com",
            "role": "technical_team",
            "customPermissions": [
                {"resource": "users", "actions": []},
                {"resource": "expenditures", "actions": ["create", "approve"]},
            ],
        }
    ),
    UserProfile.model_validate(
        {
            "id": "u-legacy-perms",
            "role": "auditor",
            "customPermissions": [{"resource": "tasks", "actions": ["read", "publish"]}],
        }
    ),
]


def make_token(subject: str, *, expires_in: timedelta = timedelta(minutes=5)) -> str:
    settings = get_settings()
    payload = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def auth(subject: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(subject)}"}


@pytest.fixture
def client():
    provider = InMemoryUserProfileProvider(PROFILES)
    app.dependency_overrides[get_profile_provider] = lambda: provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestAuthentication:
    def test_missing_token(self, client: TestClient):
        response = client.get("/permissions/me")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_ERROR"

    def test_invalid_token(self, client: TestClient):
        response = client.get("/permissions/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error"]["details"] == "Invalid token"

    def test_expired_token(self, client: TestClient):
        token = make_token("u-admin", expires_in=timedelta(minutes=-5))
        response = client.get("/permissions/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"]["details"] == "Token has expired"

    def test_unknown_profile(self, client: TestClient):
        response = client.get("/permissions/me", headers=auth("u-ghost"))
        assert response.status_code == 401
        assert response.json()["error"]["details"] == "Profile not found"

    def test_inactive_profile(self, client: TestClient):
        response = client.get("/permissions/me", headers=auth("u-off"))
        assert response.status_code == 401
        assert response.json()["error"]["details"] == "User is inactive"


class TestPermissionRoutes:
    def test_my_capabilities(self, client: TestClient):
        response = client.get("/permissions/me", headers=auth("u-pm"))
        assert response.status_code == 200
        body = response.json()
        assert body["user_role"] == "project_manager"
        assert body["is_admin"] is False
        assert body["can_verify_tasks"] is True
        assert body["can_approve_expenditures"] is True
        assert body["can_manage_settings"] is False
        assert body["permissions"][0] == {
            "resource": "tasks",
            "actions": ["create", "read", "update", "approve", "export"],
        }

    def test_unknown_role_profile_has_no_capabilities(self, client: TestClient):
        body = client.get("/permissions/me", headers=auth("u-legacy")).json()
        assert body["user_role"] == "supervisor"
        assert body["is_admin"] is False
        assert body["permissions"] == []

    def test_check_uses_custom_permissions(self, client: TestClient):
        response = client.post(
            "/permissions/check",
            json={"resource": "expenditures", "action": "approve"},
            headers=auth("u-restricted"),
        )
        assert response.status_code == 200
        assert response.json() == {"resource": "expenditures", "action": "approve", "allowed": True}

        response = client.post(
            "/permissions/check",
            json={"resource": "expenditures", "action": "read"},
            headers=auth("u-restricted"),
        )
        assert response.json()["allowed"] is False

    def test_check_unknown_names_are_denied(self, client: TestClient):
        response = client.post(
            "/permissions/check",
            json={"resource": "invoices", "action": "read"},
            headers=auth("u-admin"),
        )
        assert response.status_code == 200
        assert response.json()["allowed"] is False

    def test_routes_resolve_capabilities_dependency(self, client: TestClient):
        capabilities = UserCapabilities.for_profile(
            UserProfile(id="u-stub", role="finance_officer")
        )
        app.dependency_overrides[get_capabilities] = lambda: capabilities

        body = client.get("/permissions/me").json()
        assert body["user_role"] == "finance_officer"
        assert body["can_approve_expenditures"] is True

        response = client.post(
            "/permissions/check", json={"resource": "budgets", "action": "approve"}
        )
        assert response.json()["allowed"] is True

    def test_stored_profile_with_unknown_names_is_served(self, client: TestClient):
        response = client.post(
            "/permissions/check",
            json={"resource": "tasks", "action": "read"},
            headers=auth("u-legacy-perms"),
        )
        assert response.status_code == 200
        assert response.json()["allowed"] is True

    def test_list_roles(self, client: TestClient):
        response = client.get("/permissions/roles", headers=auth("u-tech"))
        assert response.status_code == 200
        roles = [item["role"] for item in response.json()]
        assert roles == [role.value for role in Role]

    def test_get_role(self, client: TestClient):
        body = client.get("/permissions/roles/auditor", headers=auth("u-admin")).json()
        assert body["description"] == ROLE_PERMISSIONS[Role.AUDITOR].description
        assert len(body["permissions"]) == len(ROLE_PERMISSIONS[Role.AUDITOR].permissions)

    def test_get_unknown_role_is_empty(self, client: TestClient):
        response = client.get("/permissions/roles/owner", headers=auth("u-admin"))
        assert response.status_code == 200
        assert response.json() == {"role": "owner", "description": None, "permissions": []}

    def test_role_listing_denied_by_override(self, client: TestClient, caplog: pytest.LogCaptureFixture):
        with caplog.at_level("WARNING", logger="projecthub.rbac"):
            response = client.get("/permissions/roles", headers=auth("u-restricted"))

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "PERMISSION_DENIED"
        assert error["details"] == {"resource": "users", "action": "read"}
        assert any("/permissions/roles" in record.getMessage() for record in caplog.records)


class TestApprovalRoutes:
    @pytest.mark.parametrize(
        ("amount", "levels"),
        [
            (99_999, ["team_lead", "accounts"]),
            (100_000, ["team_lead", "project_manager", "accounts"]),
            (500_000, ["team_lead", "project_manager", "accounts", "admin"]),
        ],
    )
    def test_expenditure_levels(self, client: TestClient, amount: int, levels: list[str]):
        response = client.get(
            "/approvals/expenditures/levels", params={"amount": amount}, headers=auth("u-tech")
        )
        assert response.status_code == 200
        assert response.json() == {"amount": amount, "levels": levels}

    def test_negative_amount_is_rejected(self, client: TestClient):
        response = client.get(
            "/approvals/expenditures/levels", params={"amount": -1}, headers=auth("u-tech")
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_fractional_amount_is_rejected(self, client: TestClient):
        response = client.get(
            "/approvals/expenditures/levels", params={"amount": "99999.5"}, headers=auth("u-tech")
        )
        assert response.status_code == 422

    def test_configured_thresholds_are_used(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        configured = get_settings().model_copy(
            update={"expenditure_tier1_threshold": 10, "expenditure_tier2_threshold": 20}
        )
        monkeypatch.setattr(config, "_settings_instance", configured)

        response = client.get(
            "/approvals/expenditures/levels", params={"amount": 15}, headers=auth("u-tech")
        )
        assert response.json()["levels"] == ["team_lead", "project_manager", "accounts"]

    @pytest.mark.parametrize(
        ("subject", "level", "expected"),
        [
            ("u-admin", "admin", True),
            ("u-pm", "team_lead", True),
            ("u-pm", "accounts", False),
            ("u-fo", "accounts", True),
            ("u-tech", "admin", False),
            ("u-admin", "board", False),
        ],
    )
    def test_level_check(self, client: TestClient, subject: str, level: str, expected: bool):
        response = client.get(f"/approvals/levels/{level}", headers=auth(subject))
        assert response.status_code == 200
        assert response.json()["can_approve"] is expected


class TestLifespan:
    def test_permission_table_loaded_on_startup(self, tmp_path, monkeypatch: pytest.MonkeyPatch):
        roles = {}
        for role, role_set in ROLE_PERMISSIONS.items():
            entries = [
                {"resource": entry.resource.value, "actions": [a.value for a in entry.actions]}
                for entry in role_set.permissions
            ]
            if role is Role.TECHNICAL_TEAM:
                entries[7]["actions"] = ["read"]
            roles[role.value] = {"description": role_set.description, "permissions": entries}
        path = tmp_path / "permissions.json"
        path.write_text(json.dumps({"roles": roles}), encoding="utf-8")

        configured = get_settings().model_copy(update={"permission_table_path": str(path)})
        monkeypatch.setattr(config, "_settings_instance", configured)

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.json()["status"] == "ok"
        assert permissions.has_permission("technical_team", "audit_logs", "read") is True

    def test_health_without_table_file(self, monkeypatch: pytest.MonkeyPatch):
        configured = Settings(
            secret_key="test-secret-key",
            allowed_origins=["http://localhost:5173"],
        )
        monkeypatch.setattr(config, "_settings_instance", configured)

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "roles": len(Role)}
