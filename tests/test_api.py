from datetime import timedelta

import pytest

from portal.core.config import settings
from portal.core.security import create_session_token, verify_session_token

API = settings.API_V1_PREFIX

STUDENT = {
    "id": 5,
    "first_name": "Thandi",
    "last_name": "Mokoena",
    "email": "thandi@university.ac.za",
    "student_number": "ST2024001",
    "faculty": "Engineering",
    "programme": "BEng Civil",
    "registration_date": "2024-02-01T08:00:00Z",
    "status": "Active",
}


@pytest.fixture
def signed_in(client, remote):
    remote.add(
        "POST",
        "/students/login",
        json_body={"message": "Login successful!", "user_id": 5, "access_token": "token-abc"},
    )
    remote.add("POST", "/students/verify-mfa", json_body={"message": "MFA verified!"})
    remote.add("GET", "/students/student/5", json_body={"student": STUDENT})

    response = client.post(f"{API}/auth/login", json={"email": "thandi@university.ac.za", "password": "secret"})
    assert response.json()["redirect"] == "/pages/mfa"
    response = client.post(f"{API}/auth/verify-mfa", json={"mfa_code": "123456"})
    assert response.json()["redirect"] == "/dashboard"
    return client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"]


def test_upstream_request_id_is_kept(client):
    response = client.get("/health", headers={"X-Request-ID": "proxy-42"})
    assert response.headers["X-Request-ID"] == "proxy-42"


def test_screens_require_session(client, remote):
    response = client.get(f"{API}/records/banking")

    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "SESSION_EXPIRED"
    assert error["details"]["redirect"] == "/login"
    assert remote.calls == []


def test_login_sets_session_cookie(client, remote):
    remote.add("POST", "/students/login", json_body={"user_id": 5, "access_token": "token-abc"})

    response = client.post(f"{API}/auth/login", json={"email": "thandi@university.ac.za", "password": "secret"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["next_step"] == "mfa"
    assert body["notifications"] == [{"message": "Login successful!", "severity": "success"}]
    assert settings.SESSION_COOKIE_NAME in response.cookies

    session = client.get(f"{API}/auth/session").json()
    assert session == {"authenticated": True, "user_id": "5", "has_student": False}

    # Logged in but MFA pending: no student yet
    assert client.get(f"{API}/records/banking").status_code == 401


def test_login_validation_errors(client, remote):
    response = client.post(f"{API}/auth/login", json={"email": "nope", "password": ""})

    body = response.json()
    assert body["success"] is False
    assert body["errors"] == {"email": "Email is invalid", "password": "Password is required"}
    assert remote.calls == []


def test_session_cookie_tokens():
    token = create_session_token("abc123")
    assert verify_session_token(token) == "abc123"
    assert verify_session_token("not-a-token") is None
    assert verify_session_token(None) is None
    assert verify_session_token(create_session_token("abc123", timedelta(seconds=-5))) is None


def test_session_after_mfa(signed_in):
    session = signed_in.get(f"{API}/auth/session").json()
    assert session["has_student"] is True


def test_academics_are_read_only(signed_in):
    body = signed_in.get(f"{API}/records/academics").json()
    assert body["read_only"] is True
    assert body["form"]["studentNumber"] == "ST2024001"
    assert body["form"]["registrationDate"] == "2024-02-01"

    response = signed_in.post(f"{API}/records/academics", json={"fields": {"faculty": "Law"}})
    assert response.status_code == 422
    assert response.json()["error"]["details"] == {"field": "faculty"}


def test_banking_create_flow(signed_in, remote):
    remote.add(
        "POST",
        "/students/banking-details",
        json_body={"bank_name": "FNB", "account_type": "Savings", "account_number": "62000012345"},
    )

    body = signed_in.get(f"{API}/records/banking").json()
    assert body["exists"] is False
    assert body["form"] == {"bankName": "", "accountType": "", "accountNumber": ""}

    response = signed_in.post(
        f"{API}/records/banking",
        json={"fields": {"bankName": "FNB", "accountType": "Savings", "accountNumber": "62000012345"}},
    )
    body = response.json()
    assert body["success"] is True
    assert body["exists"] is True
    assert body["notifications"] == [
        {"message": "Banking details saved successfully", "severity": "success"}
    ]
    request = remote.requests_to("POST", "/students/banking-details")[0]
    assert request.headers["Authorization"] == "Bearer token-abc"


def test_banking_validation_failure(signed_in, remote):
    response = signed_in.post(f"{API}/records/banking", json={"fields": {"bankName": "FNB"}})

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["form"]["bankName"] == "FNB"
    assert set(body["errors"]) == {"accountType", "accountNumber"}
    assert body["notifications"][0]["severity"] == "error"
    assert remote.requests_to("POST", "/students/banking-details") == []


def test_numeric_field_with_server_rejection(signed_in, remote):
    remote.add(
        "POST",
        "/students/banking-details",
        status=422,
        json_body={"message": "Validation failed", "errors": {"account_number": ["Already registered"]}},
    )

    response = signed_in.post(
        f"{API}/records/banking",
        json={"fields": {"bankName": "FNB", "accountType": "Savings", "accountNumber": 62000012345}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["form"]["accountNumber"] == "62000012345"
    assert body["errors"] == {"accountNumber": "Already registered"}
    assert body["notifications"] == [{"message": "Validation failed", "severity": "error"}]


def test_short_numeric_field_fails_validation(signed_in, remote):
    response = signed_in.post(f"{API}/records/banking", json={"fields": {"bankName": "FNB", "accountNumber": 12}})

    assert response.status_code == 200
    body = response.json()
    assert body["form"]["accountNumber"] == "12"
    assert set(body["errors"]) == {"accountType", "accountNumber"}


def test_nested_field_value_is_rejected(signed_in, remote):
    response = signed_in.post(f"{API}/records/banking", json={"fields": {"bankName": {"name": "FNB"}}})

    assert response.status_code == 422
    assert remote.requests_to("POST", "/students/banking-details") == []


def test_unknown_record_and_field(signed_in):
    assert signed_in.get(f"{API}/records/medical").status_code == 404

    response = signed_in.post(f"{API}/records/banking", json={"fields": {"swiftCode": "X"}})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_documents_screen(signed_in, remote):
    remote.add(
        "GET",
        "/students/documents/5",
        json_body={"documents": [{"doc_type": "cv", "document": "https://cdn.test/docs/cv.pdf"}]},
    )

    body = signed_in.get(f"{API}/documents").json()

    slots = {slot["key"]: slot for slot in body["slots"]}
    assert slots["cv"]["state"] == "uploaded"
    assert slots["idDocument"]["state"] == "empty"
    assert body["progress"] == {
        "uploaded_count": 1,
        "verified_count": 0,
        "total_required": 5,
        "complete": False,
    }
    assert [a["available"] for a in body["agreements"]] == [False, False]


def test_document_upload(signed_in, remote):
    remote.add(
        "POST",
        "/students/upload/supporting-documents",
        json_body={"files": ["https://cdn.test/docs/5/id.pdf"], "uploaded_count": 1},
    )

    response = signed_in.post(
        f"{API}/documents/idDocument",
        files={"file": ("id.pdf", b"%PDF-1.4 test", "application/pdf")},
    )

    body = response.json()
    assert body["success"] is True
    slot = next(s for s in body["slots"] if s["key"] == "idDocument")
    assert slot["state"] == "uploaded"
    assert slot["documents"][0]["status"] == "Pending Verification"


def test_rejected_upload_is_not_forwarded(signed_in, remote):
    response = signed_in.post(
        f"{API}/documents/idDocument",
        files={"file": ("setup.exe", b"MZ", "application/octet-stream")},
    )

    body = response.json()
    assert body["success"] is False
    assert body["notifications"] == [
        {"message": "Only PDF, JPG, and PNG files are allowed", "severity": "error"}
    ]
    assert remote.requests_to("POST", "/students/upload/supporting-documents") == []


def test_logout(signed_in):
    assert signed_in.post(f"{API}/auth/logout").json() == {"message": "Logged out successfully"}
    assert signed_in.get(f"{API}/records/academics").status_code == 401


def test_openapi_documents_error_envelope(client):
    schema = client.get(f"{API}/openapi.json").json()
    responses = schema["paths"][f"{API}/records/{{record}}"]["get"]["responses"]
    assert "401" in responses
    assert "ErrorResponse" in schema["components"]["schemas"]
