"""
Registration, login and /me tests.
"""

import pytest
from minierp.models import User
from minierp.services import token_service
from minierp.services.auth_service import verify_password

from conftest import TEST_PASSWORD, make_user, auth_headers, token_for


def register(client, **overrides):
    body = {
        "name": "Ann Example",
        "email": "ann@example.com",
        "password": "secret123",
    }
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


class TestRegister:
    def test_register_returns_token_and_user(self, client, db_session):
        response = register(client, department="Sales")

        assert response.status_code == 201
        data = response.get_json()
        assert data["success"] is True
        assert data["user"]["email"] == "ann@example.com"
        assert data["user"]["role"] == "staff"
        assert data["user"]["department"] == "Sales"
        assert data["user"]["isActive"] is True
        assert "password" not in data["user"]
        assert "passwordHash" not in data["user"]

        identity = token_service.verify(data["token"])
        assert identity.user_id == data["user"]["id"]
        assert identity.role == "staff"

    def test_password_is_stored_hashed(self, client, db_session):
        register(client)
        user = db_session.query(User).filter_by(email="ann@example.com").one()
        assert user.password_hash != "secret123"
        assert verify_password("secret123", user.password_hash)

    def test_email_is_normalized(self, client, db_session):
        response = register(client, email="  Ann@Example.COM ")
        assert response.status_code == 201
        assert response.get_json()["user"]["email"] == "ann@example.com"

    def test_duplicate_email_differing_in_case_conflicts(self, client, db_session):
        assert register(client).status_code == 201

        response = register(client, email="ANN@example.com")
        assert response.status_code == 409
        assert response.get_json() == {"success": False, "error": "Email already registered"}

    def test_short_password_rejected(self, client, db_session):
        response = register(client, password="12345")
        assert response.status_code == 400
        assert "at least 6" in response.get_json()["error"]
        assert db_session.query(User).count() == 0

    @pytest.mark.parametrize("missing", ["name", "email", "password"])
    def test_missing_field_rejected(self, client, db_session, missing):
        response = register(client, **{missing: None})
        assert response.status_code == 400

    def test_unknown_role_rejected(self, client, db_session):
        response = register(client, role="owner")
        assert response.status_code == 400


class TestLogin:
    def test_login_with_valid_credentials(self, client, staff_user):
        response = client.post("/api/auth/login", json={
            "email": "STAFF@example.com",
            "password": TEST_PASSWORD,
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data["success"] is True
        assert data["user"]["id"] == staff_user.id
        assert token_service.verify(data["token"]).email == "staff@example.com"

    def test_wrong_password_and_unknown_email_look_the_same(self, client, staff_user):
        wrong_password = client.post("/api/auth/login", json={
            "email": "staff@example.com",
            "password": "not-the-password",
        })
        unknown_email = client.post("/api/auth/login", json={
            "email": "nobody@example.com",
            "password": TEST_PASSWORD,
        })

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.get_json() == unknown_email.get_json()
        assert wrong_password.get_json()["error"] == "Invalid credentials"

    def test_deactivated_account_is_forbidden(self, client, db_session):
        make_user(db_session, "staff", email="gone@example.com", is_active=False)

        response = client.post("/api/auth/login", json={
            "email": "gone@example.com",
            "password": TEST_PASSWORD,
        })

        assert response.status_code == 403
        assert response.get_json()["error"].startswith("Account is deactivated")

    def test_deactivated_account_is_forbidden_regardless_of_password(self, client, db_session):
        make_user(db_session, "staff", email="gone@example.com", is_active=False)

        response = client.post("/api/auth/login", json={
            "email": "gone@example.com",
            "password": "not-the-password",
        })

        assert response.status_code == 403
        assert response.get_json()["error"] == "Account is deactivated. Contact administrator."

    @pytest.mark.parametrize("body", [
        {},
        {"email": "staff@example.com"},
        {"password": TEST_PASSWORD},
        {"email": 5, "password": TEST_PASSWORD},
    ])
    def test_missing_credentials_rejected(self, client, staff_user, body):
        response = client.post("/api/auth/login", json=body)
        assert response.status_code == 400


class TestMe:
    def test_me_returns_current_user(self, client, manager_user, manager_headers):
        response = client.get("/api/auth/me", headers=manager_headers)

        assert response.status_code == 200
        assert response.get_json()["user"]["email"] == "manager@example.com"
        assert response.get_json()["user"]["role"] == "manager"

    def test_me_for_deleted_account_is_unauthorized(self, client, db_session, staff_user):
        headers = auth_headers(token_for(staff_user))
        db_session.delete(staff_user)
        db_session.commit()

        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401
