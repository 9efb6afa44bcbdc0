from datetime import timedelta

from conftest import FakeSupabase
from qr_attendance.services.auth_service import AuthService


def test_tokens_round_trip():
    svc = AuthService(FakeSupabase())
    access, refresh = svc.create_tokens("u-1", "a@school.edu", "teacher")

    access_data = svc.decode_token(access)
    refresh_data = svc.decode_token(refresh)

    assert (access_data.user_id, access_data.role, access_data.type) == ("u-1", "teacher", "access")
    assert refresh_data.type == "refresh"
    assert refresh_data.role is None


def test_expired_and_garbage_tokens_decode_to_none():
    svc = AuthService(FakeSupabase())
    expired = svc.create_access_token({"sub": "u-1", "type": "access"}, timedelta(seconds=-1))

    assert svc.decode_token(expired) is None
    assert svc.decode_token("not-a-jwt") is None


def test_register_then_login(client, fake_db):
    response = client.post("/api/auth/register", json={
        "email": "alice@school.edu",
        "password": "secret1",
        "full_name": "Alice",
        "role": "student",
        "roll_number": "R-1",
    })
    assert response.status_code == 201
    assert fake_db.tables["profiles"][0]["roll_number"] == "R-1"

    response = client.post(
        "/api/auth/login", data={"username": "alice@school.edu", "password": "secret1"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user_role"] == "student"
    assert AuthService(fake_db).decode_token(body["access_token"]).type == "access"


def test_student_registration_requires_roll_number(client):
    response = client.post("/api/auth/register", json={
        "email": "bob@school.edu",
        "password": "secret1",
        "full_name": "Bob",
        "role": "student",
    })

    assert response.status_code == 422


def test_duplicate_email_rejected(client, fake_db, teacher_profile):
    fake_db.tables["profiles"] = [teacher_profile]

    response = client.post("/api/auth/register", json={
        "email": teacher_profile["email"],
        "password": "secret1",
        "full_name": "Again",
        "role": "teacher",
    })

    assert response.status_code == 400


def test_login_with_wrong_password(client, fake_db):
    client.post("/api/auth/register", json={
        "email": "t@school.edu", "password": "secret1", "full_name": "T", "role": "teacher",
    })

    response = client.post("/api/auth/login", data={"username": "t@school.edu", "password": "wrong"})

    assert response.status_code == 401


def test_refresh_issues_new_access_token(client, fake_db, teacher_profile):
    fake_db.tables["profiles"] = [teacher_profile]
    svc = AuthService(fake_db)
    access, refresh = svc.create_tokens(teacher_profile["id"], teacher_profile["email"], "teacher")

    response = client.post("/api/auth/refresh", json={"refresh_token": refresh})
    rejected = client.post("/api/auth/refresh", json={"refresh_token": access})

    assert response.status_code == 200
    assert svc.decode_token(response.json()["access_token"]).role == "teacher"
    assert rejected.status_code == 401


def test_register_removes_auth_user_when_profile_insert_fails(client, fake_db):
    fake_db.empty_inserts.add("profiles")

    response = client.post("/api/auth/register", json={
        "email": "carol@school.edu",
        "password": "secret1",
        "full_name": "Carol",
        "role": "teacher",
    })

    assert response.status_code == 500
    created, _ = fake_db.auth_users["carol@school.edu"]
    assert fake_db.deleted_users == [created.id]
    assert fake_db.tables.get("profiles", []) == []


def test_logout_rejects_invalid_token(client):
    response = client.post("/api/auth/logout", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401


def test_logout_with_valid_token(client, fake_db, teacher_profile):
    fake_db.tables["profiles"] = [teacher_profile]
    access, _ = AuthService(fake_db).create_tokens(
        teacher_profile["id"], teacher_profile["email"], "teacher"
    )

    response = client.post("/api/auth/logout", headers={"Authorization": f"Bearer {access}"})

    assert response.status_code == 200
    assert "delete tokens" in response.json()["message"]
