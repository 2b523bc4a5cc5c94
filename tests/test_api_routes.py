"""
tests/test_api_routes.py -- End-to-end tests for the /api routes over TestClient.

Covers:
  - signup / login: 201 / 200, duplicate email, bad credentials, unknown fields
  - the full donor -> admin flow: submit, list own, approve, second decision 409
  - role enforcement: donor cannot list all or decide; admin cannot submit
  - auth failures: missing, malformed, foreign tokens are 401 with an error code
  - cancellation: owner + pending only, foreign ids look missing
  - profile read / update, contact form, summary, ?status= filter
  - every error body uses the {message, error: {code, message, detail}} envelope
  - JSON keys are camelCase (preferredDate, createdAt, fullName, bloodGroup)
  - signup, login and contact limits answer 429 with Retry-After once exceeded
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api.limiter import limiter
from auth.tokens import encode_token
from conftest import VALID_DONATION, bearer, signup


def _error_code(resp) -> str:
    body = resp.json()
    assert body["message"] == body["error"]["message"]
    return body["error"]["code"]


def _submit(client: TestClient, token: str, **overrides) -> dict:
    resp = client.post("/api/donations", json={**VALID_DONATION, **overrides}, headers=bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuthRoutes:
    def test_signup_returns_token_and_role(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/auth/signup", json={"email": "alice@x.com", "password": "pw123"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["role"] == "donor"
        assert body["tokenType"] == "bearer"
        assert body["expiresIn"] == 3600
        assert body["token"]
        assert resp.headers["cache-control"] == "no-store"

    def test_login(self, api_client: TestClient) -> None:
        signup(api_client, "alice@x.com")
        resp = api_client.post("/api/auth/login", json={"email": "alice@x.com", "password": "pw123"})
        assert resp.status_code == 200
        assert resp.json()["role"] == "donor"

    def test_duplicate_email(self, api_client: TestClient) -> None:
        signup(api_client, "alice@x.com")
        resp = api_client.post("/api/auth/signup", json={"email": "alice@x.com", "password": "other"})
        assert resp.status_code == 400
        assert _error_code(resp) == "duplicate_email"

    def test_wrong_password_and_unknown_email_match(self, api_client: TestClient) -> None:
        signup(api_client, "alice@x.com")
        wrong = api_client.post("/api/auth/login", json={"email": "alice@x.com", "password": "nope"})
        unknown = api_client.post("/api/auth/login", json={"email": "bob@x.com", "password": "pw123"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert _error_code(wrong) == "invalid_credentials"

    def test_unknown_field_rejected(self, api_client: TestClient) -> None:
        resp = api_client.post(
            "/api/auth/signup", json={"email": "a@x.com", "password": "pw", "is_superuser": True}
        )
        assert resp.status_code == 400
        assert _error_code(resp) == "invalid_input"

    def test_validation_error_does_not_echo_password(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/auth/signup", json={"email": "not-an-email", "password": "s3cret-pw"})
        assert resp.status_code == 400
        assert "s3cret-pw" not in resp.text

    def test_bad_role_rejected(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/auth/signup", json={"email": "a@x.com", "password": "pw", "role": "root"})
        assert resp.status_code == 400

    def test_password_over_72_bytes_rejected(self, api_client: TestClient) -> None:
        # 40 characters, 80 bytes in UTF-8
        resp = api_client.post("/api/auth/signup", json={"email": "a@x.com", "password": "\u00e9" * 40})
        assert resp.status_code == 400
        assert _error_code(resp) == "invalid_input"


# ---------------------------------------------------------------------------
# Token handling
# ---------------------------------------------------------------------------


class TestTokenRejection:
    def test_missing_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/user/donations")
        assert resp.status_code == 401
        assert _error_code(resp) == "missing_token"

    def test_malformed_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/user/donations", headers=bearer("not.a.jwt"))
        assert resp.status_code == 401
        assert _error_code(resp) == "invalid_token"

    def test_non_bearer_scheme(self, api_client: TestClient) -> None:
        token = signup(api_client, "alice@x.com")
        resp = api_client.get("/api/user/donations", headers={"Authorization": f"Basic {token}"})
        assert resp.status_code == 401
        assert _error_code(resp) == "missing_token"

    def test_foreign_signature(self, api_client: TestClient) -> None:
        forged = encode_token({"sub": "1", "role": "admin", "exp": 9999999999}, "v1", "f" * 40)
        resp = api_client.get("/api/donations", headers=bearer(forged))
        assert resp.status_code == 401
        assert _error_code(resp) == "invalid_token"

    def test_expired_token(self, api_client: TestClient) -> None:
        credentials = api_client.app.state.credentials
        expired = encode_token(
            {"sub": "1", "role": "admin", "iat": 1, "exp": 2},
            credentials.settings.token_key_id,
            credentials.settings.secret_key,
        )
        resp = api_client.get("/api/donations", headers=bearer(expired))
        assert resp.status_code == 401
        assert _error_code(resp) == "expired_token"

    @pytest.mark.parametrize("kid", [["v1"], {"id": "v1"}, None])
    def test_non_string_kid_rejected(self, api_client: TestClient, kid) -> None:
        settings = api_client.app.state.credentials.settings
        token = jwt.encode(
            {"sub": "1", "role": "donor", "exp": 9999999999},
            settings.secret_key,
            algorithm="HS256",
            headers={"kid": kid},
        )
        resp = api_client.get("/api/user/profile", headers=bearer(token))
        assert resp.status_code == 401
        assert _error_code(resp) == "invalid_token"

    def test_lowercase_bearer_accepted(self, api_client: TestClient) -> None:
        token = signup(api_client, "alice@x.com")
        resp = api_client.get("/api/user/donations", headers={"Authorization": f"bearer {token}"})
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Donation flow
# ---------------------------------------------------------------------------


class TestDonationFlow:
    def test_donor_submits_and_lists_own(self, api_client: TestClient) -> None:
        signup(api_client, "alice@x.com")
        login = api_client.post("/api/auth/login", json={"email": "alice@x.com", "password": "pw123"})
        token = login.json()["token"]

        created = _submit(api_client, token)
        assert created["status"] == "pending"
        assert created["preferredDate"] == "2025-01-01"

        resp = api_client.get("/api/user/donations", headers=bearer(token))
        assert resp.status_code == 200
        rows = resp.json()
        assert len(rows) == 1
        assert rows[0]["id"] == created["id"]
        assert rows[0]["status"] == "pending"

    def test_response_keys_are_camel_case(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com", fullName="Alice A", bloodGroup="O-")
        created = _submit(api_client, donor)
        for key in ("ownerId", "preferredDate", "createdAt", "updatedAt", "fullName", "bloodGroup"):
            assert key in created
        assert not [k for k in created if "_" in k]
        assert created["bloodGroup"] == "O-"

    def test_snake_case_input_still_accepted(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        body = {**VALID_DONATION, "preferred_date": VALID_DONATION["preferredDate"]}
        del body["preferredDate"]
        resp = api_client.post("/api/donations", json=body, headers=bearer(donor))
        assert resp.status_code == 201
        assert resp.json()["preferredDate"] == "2025-01-01"

    def test_admin_approves_then_second_decision_conflicts(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        admin = signup(api_client, "admin@x.com", role="admin")
        created = _submit(api_client, donor)

        resp = api_client.put(
            f"/api/donations/{created['id']}", json={"status": "approved"}, headers=bearer(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"

        own = api_client.get("/api/user/donations", headers=bearer(donor)).json()
        assert own[0]["status"] == "approved"

        again = api_client.put(
            f"/api/donations/{created['id']}", json={"status": "rejected"}, headers=bearer(admin)
        )
        assert again.status_code == 409
        assert _error_code(again) == "conflict"
        assert api_client.get("/api/user/donations", headers=bearer(donor)).json()[0]["status"] == "approved"

    def test_donor_cannot_list_all(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        resp = api_client.get("/api/donations", headers=bearer(donor))
        assert resp.status_code == 403
        assert _error_code(resp) == "forbidden"

    def test_missing_hospital_persists_nothing(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        body = {k: v for k, v in VALID_DONATION.items() if k != "hospital"}
        resp = api_client.post("/api/donations", json=body, headers=bearer(donor))
        assert resp.status_code == 400
        assert _error_code(resp) == "invalid_input"
        assert api_client.get("/api/user/donations", headers=bearer(donor)).json() == []

    def test_blank_hospital_rejected(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        resp = api_client.post("/api/donations", json={**VALID_DONATION, "hospital": "   "}, headers=bearer(donor))
        assert resp.status_code == 400

    def test_admin_cannot_submit(self, api_client: TestClient) -> None:
        admin = signup(api_client, "admin@x.com", role="admin")
        resp = api_client.post("/api/donations", json=VALID_DONATION, headers=bearer(admin))
        assert resp.status_code == 403

    def test_donor_cannot_decide(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        created = _submit(api_client, donor)
        resp = api_client.put(f"/api/donations/{created['id']}", json={"status": "approved"}, headers=bearer(donor))
        assert resp.status_code == 403

    def test_decide_missing_id(self, api_client: TestClient) -> None:
        admin = signup(api_client, "admin@x.com", role="admin")
        resp = api_client.put("/api/donations/9999", json={"status": "approved"}, headers=bearer(admin))
        assert resp.status_code == 404
        assert _error_code(resp) == "not_found"

    def test_decide_back_to_pending_rejected(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        admin = signup(api_client, "admin@x.com", role="admin")
        created = _submit(api_client, donor)
        resp = api_client.put(f"/api/donations/{created['id']}", json={"status": "pending"}, headers=bearer(admin))
        assert resp.status_code == 400

    def test_admin_lists_all_with_filter(self, api_client: TestClient) -> None:
        alice = signup(api_client, "alice@x.com")
        bob = signup(api_client, "bob@x.com")
        admin = signup(api_client, "admin@x.com", role="admin")
        first = _submit(api_client, alice)
        _submit(api_client, bob, type="organ")
        api_client.put(f"/api/donations/{first['id']}", json={"status": "rejected"}, headers=bearer(admin))

        everything = api_client.get("/api/donations", headers=bearer(admin))
        assert everything.status_code == 200
        assert len(everything.json()) == 2

        rejected = api_client.get("/api/donations", params={"status": "rejected"}, headers=bearer(admin)).json()
        assert [d["id"] for d in rejected] == [first["id"]]

        bad = api_client.get("/api/donations", params={"status": "cancelled"}, headers=bearer(admin))
        assert bad.status_code == 400

    def test_summary(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        admin = signup(api_client, "admin@x.com", role="admin")
        first = _submit(api_client, donor)
        _submit(api_client, donor)
        api_client.put(f"/api/donations/{first['id']}", json={"status": "approved"}, headers=bearer(admin))

        resp = api_client.get("/api/donations/summary", headers=bearer(admin))
        assert resp.status_code == 200
        body = resp.json()
        assert (body["total"], body["pending"], body["approved"], body["rejected"]) == (2, 1, 1, 0)
        assert body["today"] == body["thisWeek"] == body["thisMonth"] == 2

        assert api_client.get("/api/donations/summary", headers=bearer(donor)).status_code == 403


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancel:
    def test_owner_cancels_pending(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        created = _submit(api_client, donor)
        resp = api_client.delete(f"/api/donations/{created['id']}", headers=bearer(donor))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Donation request cancelled."}
        assert api_client.get("/api/user/donations", headers=bearer(donor)).json() == []

    def test_other_donor_gets_404(self, api_client: TestClient) -> None:
        alice = signup(api_client, "alice@x.com")
        bob = signup(api_client, "bob@x.com")
        created = _submit(api_client, alice)

        foreign = api_client.delete(f"/api/donations/{created['id']}", headers=bearer(bob))
        missing = api_client.delete("/api/donations/9999", headers=bearer(bob))
        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()
        assert len(api_client.get("/api/user/donations", headers=bearer(alice)).json()) == 1

    def test_decided_request_conflicts(self, api_client: TestClient) -> None:
        donor = signup(api_client, "alice@x.com")
        admin = signup(api_client, "admin@x.com", role="admin")
        created = _submit(api_client, donor)
        api_client.put(f"/api/donations/{created['id']}", json={"status": "approved"}, headers=bearer(admin))

        resp = api_client.delete(f"/api/donations/{created['id']}", headers=bearer(donor))
        assert resp.status_code == 409


# ---------------------------------------------------------------------------
# Profile and contact
# ---------------------------------------------------------------------------


class TestProfile:
    def test_get_profile(self, api_client: TestClient) -> None:
        token = signup(api_client, "alice@x.com", fullName="Alice A", bloodGroup="A+")
        resp = api_client.get("/api/user/profile", headers=bearer(token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["email"] == "alice@x.com"
        assert body["fullName"] == "Alice A"
        assert body["bloodGroup"] == "A+"
        assert body["createdAt"]
        assert "hashedPassword" not in body
        assert "hashed_password" not in body

    def test_update_profile_keeps_snapshot(self, api_client: TestClient) -> None:
        token = signup(api_client, "alice@x.com", full_name="Alice A")
        _submit(api_client, token)

        resp = api_client.put("/api/user/profile", json={"fullName": "Alice B", "contact": "555"}, headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json()["fullName"] == "Alice B"
        assert resp.json()["contact"] == "555"

        own = api_client.get("/api/user/donations", headers=bearer(token)).json()
        assert own[0]["fullName"] == "Alice A"

    def test_role_not_editable(self, api_client: TestClient) -> None:
        token = signup(api_client, "alice@x.com")
        resp = api_client.put("/api/user/profile", json={"role": "admin"}, headers=bearer(token))
        assert resp.status_code == 400
        assert api_client.get("/api/user/profile", headers=bearer(token)).json()["role"] == "donor"

    def test_profile_requires_auth(self, api_client: TestClient) -> None:
        assert api_client.get("/api/user/profile").status_code == 401


class TestContact:
    def test_submit(self, api_client: TestClient) -> None:
        resp = api_client.post(
            "/api/contact",
            json={"name": "Sam", "email": "sam@x.com", "subject": "Hours", "message": "When are you open?"},
        )
        assert resp.status_code == 201
        assert resp.json() == {"message": "Message received."}

        stored = api_client.app.state.contact_store.list_messages()
        assert len(stored) == 1
        assert stored[0].subject == "Hours"

    def test_empty_message_rejected(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/contact", json={"name": "Sam", "email": "sam@x.com", "message": ""})
        assert resp.status_code == 400
        assert api_client.app.state.contact_store.list_messages() == []


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------


@pytest.fixture
def rate_limits_on(monkeypatch):
    """Switch the shared limiter on for one test with empty counters."""
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    yield
    limiter.reset()


class TestRateLimits:
    def test_login_limit(self, api_client: TestClient, rate_limits_on) -> None:
        codes = [
            api_client.post("/api/auth/login", json={"email": "x@x.com", "password": "nope"}).status_code
            for _ in range(11)
        ]
        assert codes[:10] == [401] * 10
        assert codes[10] == 429

        resp = api_client.post("/api/auth/login", json={"email": "x@x.com", "password": "nope"})
        assert resp.status_code == 429
        assert _error_code(resp) == "rate_limited"
        assert int(resp.headers["Retry-After"]) > 0

    def test_contact_limit(self, api_client: TestClient, rate_limits_on) -> None:
        body = {"name": "Sam", "email": "sam@x.com", "message": "hi"}
        codes = [api_client.post("/api/contact", json=body).status_code for _ in range(6)]
        assert codes == [201] * 5 + [429]
        assert len(api_client.app.state.contact_store.list_messages()) == 5

    def test_unlimited_routes_unaffected(self, api_client: TestClient, rate_limits_on) -> None:
        for _ in range(15):
            assert api_client.get("/api/health").status_code == 200
