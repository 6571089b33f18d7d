"""API tests for registration, login, password flows and token checks."""
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.core.security import create_access_token
from app.models.common import utcnow
from app.models.user import User

from conftest import API, PASSWORD, auth_headers

NEW_PASSWORD = "Another456!"


def register_payload(**overrides):
    payload = {
        "name": "Jane Doe",
        "email": "Jane@Example.com",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "role": "user",
        "department": "Software",
    }
    payload.update(overrides)
    return payload


class TestRegistration:
    def test_register_verify_login(self, api, mailer) -> None:
        response = api.post(f"{API}/auth/register", json=register_payload())
        assert response.status_code == 201
        assert response.json()["email"] == "jane@example.com"

        # Unverified accounts cannot log in yet
        response = api.post(f"{API}/auth/login", json={"email": "jane@example.com", "password": PASSWORD})
        assert response.status_code == 400

        otp = mailer.last_otp("jane@example.com")
        response = api.post(f"{API}/auth/verify-email", json={"email": "jane@example.com", "otp": otp})
        assert response.status_code == 200
        assert response.json()["token"]
        assert response.json()["user"]["role"] == "user"

        response = api.post(f"{API}/auth/login", json={"email": "jane@example.com", "password": PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == "jane@example.com"
        assert "password" not in body["user"]
        assert response.cookies.get("jwt") == body["token"]

    def test_wrong_otp(self, api, mailer) -> None:
        api.post(f"{API}/auth/register", json=register_payload())
        otp = mailer.last_otp("jane@example.com")
        wrong = "000000" if otp != "000000" else "111111"

        response = api.post(f"{API}/auth/verify-email", json={"email": "jane@example.com", "otp": wrong})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or expired OTP"

    def test_password_mismatch(self, api) -> None:
        response = api.post(f"{API}/auth/register", json=register_payload(confirm_password="Different1!"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Passwords do not match"

    def test_duplicate_email(self, api, member) -> None:
        response = api.post(f"{API}/auth/register", json=register_payload(email=member.email))
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    def test_admin_cannot_self_register(self, api) -> None:
        response = api.post(f"{API}/auth/register", json=register_payload(role="admin", department=None))
        assert response.status_code == 400

    def test_weak_password(self, api) -> None:
        response = api.post(
            f"{API}/auth/register", json=register_payload(password="weakpass", confirm_password="weakpass")
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation failed"
        assert response.json()["errors"][0]["field"] == "password"

    def test_department_required(self, api) -> None:
        response = api.post(f"{API}/auth/register", json=register_payload(department=None))
        assert response.status_code == 400


class TestLogin:
    def test_wrong_password(self, api, member) -> None:
        response = api.post(f"{API}/auth/login", json={"email": member.email, "password": "Wrong123!"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid credentials"

    def test_unknown_email(self, api) -> None:
        response = api.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert response.status_code == 400

    def test_unverified(self, api, make_user) -> None:
        user = make_user(is_verified=False)
        response = api.post(f"{API}/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 400

    def test_inactive(self, api, make_user) -> None:
        user = make_user(is_active=False)
        response = api.post(f"{API}/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 401

    def test_email_is_case_insensitive(self, api, member) -> None:
        response = api.post(f"{API}/auth/login", json={"email": member.email.upper(), "password": PASSWORD})
        assert response.status_code == 200

    def test_cookie_authenticates_and_logout_clears_it(self, api, member) -> None:
        api.post(f"{API}/auth/login", json={"email": member.email, "password": PASSWORD})

        response = api.get(f"{API}/users/me")
        assert response.status_code == 200
        assert response.json()["id"] == member.id

        api.post(f"{API}/auth/logout")
        response = api.get(f"{API}/users/me")
        assert response.status_code == 401


class TestTokenChecks:
    def test_missing_token(self, api) -> None:
        response = api.get(f"{API}/users/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required. Please log in."

    def test_expired_token(self, api, member) -> None:
        token = create_access_token(member.id, settings, expires_delta=timedelta(seconds=-10))
        response = api.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired. Please log in again."

    def test_malformed_token(self, api) -> None:
        response = api.get(f"{API}/users/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Malformed authentication token."

    def test_deactivated_account(self, api, db, member) -> None:
        headers = auth_headers(member)
        member.is_active = False
        db.add(member)
        db.commit()

        response = api.get(f"{API}/users/me", headers=headers)
        assert response.status_code == 401

    def test_token_older_than_password_change(self, api, db, member) -> None:
        member.password_changed_at = utcnow() - timedelta(seconds=60)
        db.add(member)
        db.commit()

        issued = datetime.now(timezone.utc) - timedelta(hours=1)
        token = create_access_token(member.id, settings, issued_at=issued)
        response = api.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Password changed recently. Please log in again."


class TestPasswordFlows:
    def test_forgot_and_reset(self, api, mailer, member) -> None:
        issued = datetime.now(timezone.utc) - timedelta(minutes=5)
        old_token = create_access_token(member.id, settings, issued_at=issued)
        old_headers = {"Authorization": f"Bearer {old_token}"}

        response = api.post(f"{API}/auth/forgot-password", json={"email": member.email})
        assert response.status_code == 200

        otp = mailer.last_otp(member.email)
        response = api.post(
            f"{API}/auth/reset-password",
            json={
                "email": member.email,
                "otp": otp,
                "new_password": NEW_PASSWORD,
                "confirm_password": NEW_PASSWORD,
            },
        )
        assert response.status_code == 200

        response = api.post(f"{API}/auth/login", json={"email": member.email, "password": NEW_PASSWORD})
        assert response.status_code == 200
        # Tokens from before the reset no longer work
        api.cookies.clear()
        assert api.get(f"{API}/users/me", headers=old_headers).status_code == 401

    def test_reset_with_wrong_otp(self, api, member) -> None:
        response = api.post(
            f"{API}/auth/reset-password",
            json={
                "email": member.email,
                "otp": "123456",
                "new_password": NEW_PASSWORD,
                "confirm_password": NEW_PASSWORD,
            },
        )
        assert response.status_code == 400

    def test_change_password(self, api, db, member) -> None:
        response = api.post(
            f"{API}/auth/change-password",
            json={"current_password": PASSWORD, "new_password": NEW_PASSWORD, "confirm_password": NEW_PASSWORD},
            headers=auth_headers(member),
        )
        assert response.status_code == 200

        db.expire_all()
        assert db.get(User, member.id).password_changed_at is not None
        response = api.post(f"{API}/auth/login", json={"email": member.email, "password": NEW_PASSWORD})
        assert response.status_code == 200

    def test_change_password_wrong_current(self, api, member) -> None:
        response = api.post(
            f"{API}/auth/change-password",
            json={"current_password": "Wrong123!", "new_password": NEW_PASSWORD, "confirm_password": NEW_PASSWORD},
            headers=auth_headers(member),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"

    def test_change_password_mismatch(self, api, member) -> None:
        response = api.post(
            f"{API}/auth/change-password",
            json={"current_password": PASSWORD, "new_password": NEW_PASSWORD, "confirm_password": "Other789!"},
            headers=auth_headers(member),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "New passwords do not match"
