import pytest
from fastapi.testclient import TestClient

import crud
from main import app

from conftest import KOSOVO_PHONE, SWISS_PHONE


def register(client, **body):
    payload = {"name": "Anna Meier", "phone": SWISS_PHONE}
    payload.update(body)
    return client.post("/users/register", json=payload)


def assert_error(resp, status_code, code):
    assert resp.status_code == status_code, resp.text
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == code
    assert body["error"]


# ─── Registration ──────────────────────────────────────────────────────────────

def test_register_returns_camel_case_user(client):
    resp = register(client, email="anna@example.ch", avatarUrl="https://cdn.example.ch/a.png")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    user = body["data"]
    assert user["name"] == "Anna Meier"
    assert user["phone"] == SWISS_PHONE
    assert user["email"] == "anna@example.ch"
    assert user["avatarUrl"] == "https://cdn.example.ch/a.png"
    assert "createdAt" in user
    assert isinstance(user["id"], int)


@pytest.mark.parametrize("body,code", [
    ({"name": ""}, "INVALID_NAME"),
    ({"name": "   "}, "INVALID_NAME"),
    ({"phone": "+41012345678"}, "INVALID_PHONE_FORMAT"),
    ({"phone": ""}, "MISSING_PHONE"),
    ({"phone": None}, "MISSING_PHONE"),
    ({"email": "not-an-email"}, "INVALID_EMAIL_FORMAT"),
    ({"avatarUrl": "nope"}, "VALIDATION_ERROR"),
])
def test_register_validation_errors(client, body, code):
    assert_error(register(client, **body), 400, code)


def test_register_missing_phone(client):
    resp = client.post("/users/register", json={"name": "Anna"})
    assert_error(resp, 400, "MISSING_PHONE")


def test_register_conflicts(client):
    assert register(client, email="anna@example.ch").status_code == 200
    assert_error(register(client, name="Other"), 409, "PHONE_EXISTS")
    resp = register(client, phone=KOSOVO_PHONE, email="anna@example.ch")
    assert_error(resp, 409, "EMAIL_EXISTS")


def test_register_invalid_json(client):
    resp = client.post(
        "/users/register", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert_error(resp, 400, "INVALID_JSON")


# ─── Lookup ────────────────────────────────────────────────────────────────────

def test_list_and_get_users(client):
    anna = register(client).json()["data"]
    register(client, name="Besa", phone=KOSOVO_PHONE)

    listed = client.get("/users").json()["data"]
    assert [u["name"] for u in listed] == ["Besa", "Anna Meier"]

    resp = client.get(f"/users/{anna['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["phone"] == SWISS_PHONE

    assert_error(client.get("/users/9999"), 404, "USER_NOT_FOUND")
    assert_error(client.get("/users/abc"), 404, "USER_NOT_FOUND")
    assert_error(client.get("/users/99999999999999999999"), 404, "USER_NOT_FOUND")
    assert_error(client.get("/users/%20"), 400, "MISSING_ID")


def test_get_user_by_phone(client):
    register(client)
    resp = client.get("/users/phone", params={"phone": SWISS_PHONE})
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Anna Meier"

    assert_error(client.get("/users/phone"), 400, "MISSING_PHONE")
    assert_error(client.get("/users/phone", params={"phone": "12345"}), 400, "INVALID_PHONE_FORMAT")
    assert_error(client.get("/users/phone", params={"phone": KOSOVO_PHONE}), 404, "USER_NOT_FOUND")


# ─── Update ────────────────────────────────────────────────────────────────────

def test_patch_user(client):
    anna = register(client, email="anna@example.ch").json()["data"]

    resp = client.patch(f"/users/{anna['id']}", json={"name": "  Anna M.  "})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Anna M."
    assert data["email"] == "anna@example.ch"

    # same email as before is not a conflict with oneself
    resp = client.patch(f"/users/{anna['id']}", json={"email": "anna@example.ch"})
    assert resp.status_code == 200

    resp = client.patch(f"/users/{anna['id']}", json={"email": ""})
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] is None


def test_patch_user_errors(client):
    anna = register(client, email="anna@example.ch").json()["data"]
    besa = register(client, name="Besa", phone=KOSOVO_PHONE).json()["data"]

    assert_error(client.patch(f"/users/{besa['id']}", json={"email": "anna@example.ch"}), 409, "EMAIL_EXISTS")
    assert_error(client.patch(f"/users/{besa['id']}", json={"email": "bad"}), 400, "INVALID_EMAIL_FORMAT")
    assert_error(client.patch(f"/users/{besa['id']}", json={"name": " "}), 400, "INVALID_NAME")
    assert_error(client.patch("/users/9999", json={"name": "X"}), 404, "USER_NOT_FOUND")
    assert_error(client.patch("/users/%20", json={"name": "X"}), 400, "MISSING_ID")

    resp = client.patch(
        f"/users/{anna['id']}", content="{", headers={"Content-Type": "application/json"}
    )
    assert_error(resp, 400, "INVALID_JSON")


# ─── Delete ────────────────────────────────────────────────────────────────────

def test_delete_user_summary(client):
    anna = register(client, email="anna@example.ch").json()["data"]
    client.post("/messages", json={
        "metadata": {"user": SWISS_PHONE},
        "message": {"role": "user", "content": "Hello"},
    })

    resp = client.delete(f"/users/{anna['id']}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data == {
        "success": True,
        "deletedUser": {
            "id": anna["id"],
            "name": "Anna Meier",
            "phone": SWISS_PHONE,
            "email": "anna@example.ch",
        },
        "deletedCounts": {"conversations": 1, "messages": 1, "files": 0},
    }

    assert_error(client.get(f"/users/{anna['id']}"), 404, "USER_NOT_FOUND")
    assert_error(client.delete(f"/users/{anna['id']}"), 404, "USER_NOT_FOUND")
    assert_error(client.delete("/users/%20"), 400, "MISSING_ID")


# ─── Check / OTP ───────────────────────────────────────────────────────────────

def test_check_user(client):
    register(client)

    resp = client.post("/users/check", json={"phone": SWISS_PHONE})
    data = resp.json()["data"]
    assert data["exists"] is True
    assert data["name"] == "Anna Meier"
    assert data["user"]["phone"] == SWISS_PHONE

    data = client.post("/users/check", json={"phone": KOSOVO_PHONE}).json()["data"]
    assert data == {"exists": False, "name": None, "user": None}

    # spaced display format is accepted but does not match the stored phone
    data = client.post("/users/check", json={"phone": "+41 79 123 45 67"}).json()["data"]
    assert data["exists"] is False

    assert_error(client.post("/users/check", json={"phone": "0791234567"}), 400, "VALIDATION_ERROR")
    assert_error(client.post("/users/check", json={}), 400, "VALIDATION_ERROR")
    resp = client.post("/users/check", content="nope", headers={"Content-Type": "application/json"})
    assert_error(resp, 400, "INVALID_JSON")


@pytest.mark.parametrize("otp,valid", [
    ("4444", False),
    ("1234", True),
    ("0000", True),
    ("44444", True),
])
def test_otp_verify(client, otp, valid):
    register(client)
    resp = client.post(
        "/users/otp-verify", json={"phone": SWISS_PHONE, "otp": otp, "timestamp": 1700000000000}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["valid"] is valid
    assert data["userExists"] is True
    assert data["name"] == "Anna Meier"
    assert data["phone"] == SWISS_PHONE
    assert data["otp"] == otp
    assert data["timestamp"] == 1700000000000


def test_otp_verify_unknown_user_and_errors(client):
    resp = client.post(
        "/users/otp-verify", json={"phone": KOSOVO_PHONE, "otp": "4444", "timestamp": 1}
    )
    data = resp.json()["data"]
    assert data["valid"] is False
    assert data["userExists"] is False
    assert data["user"] is None

    for body in (
        {"phone": KOSOVO_PHONE, "otp": "", "timestamp": 1},
        {"phone": KOSOVO_PHONE, "otp": "1", "timestamp": 0},
        {"phone": KOSOVO_PHONE, "otp": "1", "timestamp": "123"},
        {"phone": "123", "otp": "1", "timestamp": 1},
    ):
        assert_error(client.post("/users/otp-verify", json=body), 400, "VALIDATION_ERROR")

    resp = client.post("/users/otp-verify", content="", headers={"Content-Type": "application/json"})
    assert_error(resp, 400, "INVALID_JSON")


# ─── Unexpected failures ───────────────────────────────────────────────────────

def test_unexpected_error_is_internal_error(client, monkeypatch):
    def boom(db):
        raise RuntimeError("database exploded: secret detail")

    monkeypatch.setattr(crud, "list_users", boom)
    quiet_client = TestClient(app, raise_server_exceptions=False)
    resp = quiet_client.get("/users")
    assert resp.status_code == 500
    body = resp.json()
    assert body == {"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}
