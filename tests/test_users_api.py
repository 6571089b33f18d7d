"""API tests for the admin user management endpoints."""
from app.models.user import Department, User

from conftest import API, PASSWORD, auth_headers


def test_me_hides_secrets(api, member) -> None:
    response = api.get(f"{API}/users/me", headers=auth_headers(member))
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == member.email
    assert "password" not in body
    assert "otp" not in body


def test_list_requires_admin(api, moderator) -> None:
    assert api.get(f"{API}/users", headers=auth_headers(moderator)).status_code == 403


def test_list_filters(api, admin, make_user) -> None:
    make_user(name="Maha Marketer", department=Department.MARKETING)
    make_user(name="Sami Software")

    headers = auth_headers(admin)
    response = api.get(f"{API}/users", params={"department": "Marketing"}, headers=headers)
    assert [u["name"] for u in response.json()] == ["Maha Marketer"]

    response = api.get(f"{API}/users", params={"search": "sami"}, headers=headers)
    assert [u["name"] for u in response.json()] == ["Sami Software"]

    response = api.get(f"{API}/users", params={"role": "admin"}, headers=headers)
    assert [u["id"] for u in response.json()] == [admin.id]


def test_admin_creates_verified_user(api, admin) -> None:
    response = api.post(
        f"{API}/users",
        json={
            "name": "Omar Khaled",
            "email": "Omar@Example.com",
            "password": PASSWORD,
            "role": "moderator",
            "department": "Software",
        },
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "omar@example.com"
    assert body["is_verified"] is True
    assert "password" not in body

    response = api.post(f"{API}/auth/login", json={"email": "omar@example.com", "password": PASSWORD})
    assert response.status_code == 200


def test_create_duplicate_email(api, admin, member) -> None:
    response = api.post(
        f"{API}/users",
        json={"name": "Copy Cat", "email": member.email, "password": PASSWORD, "department": "Software"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409


def test_create_requires_department_for_non_admin(api, admin) -> None:
    response = api.post(
        f"{API}/users",
        json={"name": "No Dept", "email": "nodept@example.com", "password": PASSWORD},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


def test_update_user(api, db, admin, member) -> None:
    response = api.patch(
        f"{API}/users/{member.id}", json={"name": "Renamed User", "is_active": False}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed User"

    db.expire_all()
    assert db.get(User, member.id).is_active is False


def test_update_email_taken(api, admin, member, moderator) -> None:
    response = api.patch(
        f"{API}/users/{member.id}", json={"email": moderator.email}, headers=auth_headers(admin)
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already in use by another user"


def test_update_empty_body(api, admin, member) -> None:
    response = api.patch(f"{API}/users/{member.id}", json={}, headers=auth_headers(admin))
    assert response.status_code == 400


def test_update_missing_user(api, admin) -> None:
    response = api.patch(f"{API}/users/missing", json={"name": "Nobody Here"}, headers=auth_headers(admin))
    assert response.status_code == 404


def test_update_unknown_department_role(api, admin, member) -> None:
    response = api.patch(
        f"{API}/users/{member.id}", json={"department_role_id": "missing"}, headers=auth_headers(admin)
    )
    assert response.status_code == 400


def test_delete_user(api, admin, member) -> None:
    headers = auth_headers(admin)
    assert api.delete(f"{API}/users/{member.id}", headers=headers).status_code == 204
    assert api.get(f"{API}/users/{member.id}", headers=headers).status_code == 404


def test_admin_cannot_delete_self(api, admin) -> None:
    response = api.delete(f"{API}/users/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "Users cannot delete themselves"


def test_delete_user_who_created_projects(api, admin, moderator, make_project) -> None:
    project_id = make_project(created_by=moderator.id, edit_requested_by=moderator.id).id
    moderator_id = moderator.id
    headers = auth_headers(admin)

    assert api.delete(f"{API}/users/{moderator_id}", headers=headers).status_code == 204

    body = api.get(f"{API}/projects/{project_id}", headers=headers).json()
    assert body["created_by"] == moderator_id
