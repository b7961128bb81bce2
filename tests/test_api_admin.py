"""
Administration API tests — auth, users, roles, settings and access requests.
"""

import pytest


# ═══════════════════════════════════════════════════════════════
# AUTH
# ═══════════════════════════════════════════════════════════════

class TestAuthAPI:
    def test_health_is_public(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_login_returns_token_and_user(self, client):
        res = client.post("/api/v1/auth/login", json={"username": "ADMIN", "password": "admin"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["token_type"] == "Bearer"
        assert data["user"]["id"] == "u1"
        assert "password_hash" not in data["user"]

    def test_login_wrong_password(self, client):
        res = client.post("/api/v1/auth/login", json={"username": "admin", "password": "nope"})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_login_missing_fields(self, client):
        assert client.post("/api/v1/auth/login", json={"username": "admin"}).status_code == 400

    def test_directory_login_disabled_by_default(self, client):
        res = client.post("/api/v1/auth/login", json={"username": "jdoe", "password": "x"})
        assert res.status_code == 401

    def test_invalid_token(self, client):
        res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert res.status_code == 401

    def test_me(self, client, msmith_headers):
        data = client.get("/api/v1/auth/me", headers=msmith_headers).get_json()
        assert data["user"]["username"] == "msmith"
        assert data["role"]["id"] == "role-user"
        assert {c["code"] for c in data["capabilities"]} == {"view_dashboard", "view_practices"}

    def test_unknown_route(self, client, admin_headers):
        assert client.get("/api/v1/nothing-here", headers=admin_headers).status_code == 404


# ═══════════════════════════════════════════════════════════════
# USERS
# ═══════════════════════════════════════════════════════════════

class TestUsersAPI:
    def test_list(self, client, admin_headers):
        users = client.get("/api/v1/users", headers=admin_headers).get_json()
        assert [u["username"] for u in users] == ["admin", "jdoe", "msmith"]

    def test_list_requires_capability(self, client, msmith_headers):
        res = client.get("/api/v1/users", headers=msmith_headers)
        assert res.status_code == 403
        assert res.get_json()["details"]["required_any"] == ["view_users", "manage_users"]

    def test_create_then_login(self, client, admin_headers, login_as):
        res = client.post("/api/v1/users", json={
            "username": "lgarcia",
            "full_name": "Lucía García",
            "email": "lgarcia@example.com",
            "role_id": "role-user",
            "password": "s3cret!",
            "password_confirmation": "s3cret!",
            "permissions": [{"category_id": "p0-0-0", "can_edit": True}],
        }, headers=admin_headers)
        assert res.status_code == 201
        headers = login_as("lgarcia", "s3cret!")
        practices = client.get("/api/v1/practices", headers=headers).get_json()
        assert [p["id"] for p in practices] == ["p0-0"]

    def test_create_with_string_can_edit(self, client, admin_headers):
        body = {
            "username": "rortiz", "full_name": "Rosa Ortiz", "email": "rortiz@example.com",
            "role_id": "role-user", "auth_type": "directory",
            "permissions": [{"category_id": "p0-0-0", "can_edit": "false"}],
        }
        res = client.post("/api/v1/users", json=body, headers=admin_headers)
        assert res.status_code == 201
        assert res.get_json()["permissions"] == [{"category_id": "p0-0-0", "can_edit": False}]

        body["username"] = "rortiz2"
        body["permissions"] = [{"category_id": "p0-0-0", "can_edit": "sí"}]
        res = client.post("/api/v1/users", json=body, headers=admin_headers)
        assert res.status_code == 422
        assert res.get_json()["details"] == {"can_edit": "invalid"}

    def test_create_duplicate_username(self, client, admin_headers):
        res = client.post("/api/v1/users", json={
            "username": "MSmith", "email": "m2@example.com", "role_id": "role-user", "auth_type": "directory",
        }, headers=admin_headers)
        assert res.status_code == 409

    def test_create_missing_fields(self, client, admin_headers):
        assert client.post("/api/v1/users", json={"username": "x"}, headers=admin_headers).status_code == 400

    def test_update(self, client, admin_headers):
        res = client.put("/api/v1/users/u3", json={"full_name": "Mary J. Smith"}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["full_name"] == "Mary J. Smith"

    def test_cannot_delete_self(self, client, admin_headers):
        assert client.delete("/api/v1/users/u1", headers=admin_headers).status_code == 409

    def test_deleted_user_token_rejected(self, client, admin_headers, msmith_headers):
        assert client.delete("/api/v1/users/u3", headers=admin_headers).status_code == 200
        assert client.get("/api/v1/auth/me", headers=msmith_headers).status_code == 401

    def test_set_category_access(self, client, admin_headers, msmith_headers):
        res = client.put("/api/v1/users/u3/permissions/p0-0-0", json={"level": "view"}, headers=admin_headers)
        assert res.status_code == 200
        practices = client.get("/api/v1/practices", headers=msmith_headers).get_json()
        assert {c["id"] for p in practices for c in p["categories"]} == {"p0-0-0", "p2-0-0"}

    def test_revoke_category_access(self, client, admin_headers, msmith_headers):
        client.put("/api/v1/users/u3/permissions/p2-0-0", json={"level": "none"}, headers=admin_headers)
        assert client.get("/api/v1/practices", headers=msmith_headers).get_json() == []

    def test_invalid_level(self, client, admin_headers):
        res = client.put("/api/v1/users/u3/permissions/p0-0-0", json={"level": "owner"}, headers=admin_headers)
        assert res.status_code == 400


# ═══════════════════════════════════════════════════════════════
# ROLES
# ═══════════════════════════════════════════════════════════════

class TestRolesAPI:
    def test_list_with_user_count(self, client, admin_headers):
        roles = {r["id"]: r for r in client.get("/api/v1/roles", headers=admin_headers).get_json()}
        assert roles["role-admin"]["user_count"] == 1
        assert roles["role-user"]["user_count"] == 2
        assert roles["role-admin"]["is_default"] is True

    def test_capability_catalogue(self, client, admin_headers):
        caps = client.get("/api/v1/roles/capabilities", headers=admin_headers).get_json()
        assert len(caps) == 12
        assert all(c["label"] for c in caps)

    def test_create_update_delete(self, client, admin_headers):
        res = client.post("/api/v1/roles", json={"name": "Auditor", "capabilities": ["view_dashboard"]},
                          headers=admin_headers)
        assert res.status_code == 201
        rid = res.get_json()["id"]

        res = client.put(f"/api/v1/roles/{rid}", json={"capabilities": ["view_dashboard", "view_users"]},
                         headers=admin_headers)
        assert res.get_json()["capabilities"] == ["view_dashboard", "view_users"]

        assert client.delete(f"/api/v1/roles/{rid}", headers=admin_headers).status_code == 200

    def test_default_role_protected(self, client, admin_headers):
        assert client.delete("/api/v1/roles/role-user", headers=admin_headers).status_code == 409
        assert client.put("/api/v1/roles/role-user", json={"name": "X"}, headers=admin_headers).status_code == 409

    def test_role_in_use(self, client, admin_headers):
        rid = client.post("/api/v1/roles", json={"name": "Operador"}, headers=admin_headers).get_json()["id"]
        client.put("/api/v1/users/u3", json={"role_id": rid}, headers=admin_headers)
        res = client.delete(f"/api/v1/roles/{rid}", headers=admin_headers)
        assert res.status_code == 409
        assert "asignado" in res.get_json()["error"]

    def test_role_change_applies_to_live_session(self, client, admin_headers, msmith_headers):
        rid = client.post("/api/v1/roles", json={"name": "Supervisor", "capabilities": ["view_users"]},
                          headers=admin_headers).get_json()["id"]
        client.put("/api/v1/users/u3", json={"role_id": rid}, headers=admin_headers)
        assert client.get("/api/v1/users", headers=msmith_headers).status_code == 200

    def test_user_cannot_manage_roles(self, client, msmith_headers):
        assert client.post("/api/v1/roles", json={"name": "X"}, headers=msmith_headers).status_code == 403


# ═══════════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════════

class TestSettingsAPI:
    def test_ldap_update_hides_password(self, client, admin_headers):
        res = client.put("/api/v1/settings/ldap", json={
            "enabled": True, "server_url": "ldaps://dc01.corp.local:636", "bind_password": "secret",
        }, headers=admin_headers)
        assert res.status_code == 200
        data = client.get("/api/v1/settings/ldap", headers=admin_headers).get_json()
        assert data["enabled"] is True
        assert data["has_bind_password"] is True
        assert "bind_password" not in data

    def test_ldap_invalid(self, client, admin_headers):
        res = client.put("/api/v1/settings/ldap", json={"enabled": True, "server_url": "http://x"},
                         headers=admin_headers)
        assert res.status_code == 422

    def test_enabling_ldap_allows_directory_login(self, client, admin_headers):
        client.put("/api/v1/settings/ldap", json={"enabled": True}, headers=admin_headers)
        res = client.post("/api/v1/auth/login", json={"username": "jdoe", "password": "any"})
        assert res.status_code == 200

    def test_sharepoint_update(self, client, admin_headers):
        res = client.put("/api/v1/settings/sharepoint", json={"max_file_name_length": 64}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["max_file_name_length"] == 64

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/v1/settings/ldap"),
        ("put", "/api/v1/settings/ldap"),
        ("get", "/api/v1/settings/sharepoint"),
        ("post", "/api/v1/settings/ldap/test"),
    ])
    def test_user_denied(self, client, msmith_headers, method, path):
        res = getattr(client, method)(path, json={}, headers=msmith_headers)
        assert res.status_code == 403

    def test_connection_check(self, client, admin_headers):
        res = client.post("/api/v1/settings/sharepoint/test", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["success"] is False

    def test_unknown_integration(self, client, admin_headers):
        assert client.post("/api/v1/settings/ftp/test", headers=admin_headers).status_code == 404


# ═══════════════════════════════════════════════════════════════
# ACCESS REQUESTS
# ═══════════════════════════════════════════════════════════════

class TestAccessRequestsAPI:
    def test_manager_sees_all_with_names(self, client, admin_headers):
        requests = client.get("/api/v1/access-requests", headers=admin_headers).get_json()
        assert [r["id"] for r in requests] == ["req1", "req2", "req3"]
        assert requests[0]["user_name"] == "John Doe"
        assert requests[0]["status"] == "Pendiente"

    def test_user_sees_own(self, client, msmith_headers):
        requests = client.get("/api/v1/access-requests", headers=msmith_headers).get_json()
        assert [r["id"] for r in requests] == ["req2"]

    def test_request_and_approve(self, client, admin_headers, msmith_headers):
        res = client.post("/api/v1/access-requests", json={"category_id": "p0-0-0"}, headers=msmith_headers)
        assert res.status_code == 201
        rid = res.get_json()["id"]

        dup = client.post("/api/v1/access-requests", json={"category_id": "p0-0-0"}, headers=msmith_headers)
        assert dup.status_code == 409

        assert client.post(f"/api/v1/access-requests/{rid}/approve", headers=msmith_headers).status_code == 403
        res = client.post(f"/api/v1/access-requests/{rid}/approve", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["status"] == "Aprobado"

        practices = client.get("/api/v1/practices", headers=msmith_headers).get_json()
        flags = {c["id"]: c["can_edit"] for p in practices for c in p["categories"]}
        assert flags == {"p0-0-0": False, "p2-0-0": True}

        again = client.post(f"/api/v1/access-requests/{rid}/reject", headers=admin_headers)
        assert again.status_code == 409

    def test_request_for_visible_category(self, client, msmith_headers):
        res = client.post("/api/v1/access-requests", json={"category_id": "p2-0-0"}, headers=msmith_headers)
        assert res.status_code == 409

    def test_reject(self, client, admin_headers):
        res = client.post("/api/v1/access-requests/req1/reject", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["status"] == "Rechazado"
