"""Tests for the survey HTTP API."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from surveyinator.api import create_app
from surveyinator.auth.tokens import issue_session_token, make_token, verify_token


@pytest.fixture
def app(config, repo):
    return create_app(config, repository=repo)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def headers(allowed_origin):
    return {"Origin": allowed_origin}


@pytest.fixture
def token(token_secret, sample_code_hash):
    return issue_session_token(token_secret, sample_code_hash)


class TestOriginGate:
    """Tests for preflight, origin and method checks."""

    def test_preflight_allowed_origin(self, client, headers, allowed_origin):
        response = client.options("/api/start", headers=headers)

        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == allowed_origin
        assert response.headers["access-control-allow-methods"] == "POST,OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type"
        assert response.headers["access-control-max-age"] == "86400"

    def test_preflight_disallowed_origin(self, client):
        response = client.options("/api/start", headers={"Origin": "https://evil.example"})

        assert response.status_code == 204
        assert "access-control-allow-origin" not in response.headers

    def test_disallowed_origin_rejected(self, client):
        response = client.post("/api/start", json={"code": "x"}, headers={"Origin": "https://evil.example"})

        assert response.status_code == 403
        assert response.json() == {"error": "Origin not allowed"}

    def test_missing_origin_rejected(self, client):
        response = client.post("/api/start", json={"code": "x"})

        assert response.status_code == 403
        assert response.json() == {"error": "Origin not allowed"}

    def test_get_not_allowed(self, client, headers, allowed_origin):
        response = client.get("/api/start", headers=headers)

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
        assert response.headers["access-control-allow-origin"] == allowed_origin

    def test_unknown_path(self, client, headers):
        response = client.post("/api/unknown", json={}, headers=headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}

    def test_health_bypasses_gate(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestStartEndpoint:
    """Tests for POST /api/start."""

    def test_valid_code_returns_token(self, client, headers, repo, sample_code, sample_code_hash, token_secret):
        repo.create_access_code(sample_code_hash, uses_remaining=2)

        response = client.post("/api/start", json={"code": sample_code}, headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        payload = verify_token(token_secret, data["token"])
        assert payload["codeHash"] == sample_code_hash
        assert repo.get_access_code(sample_code_hash).uses_remaining == 1

    def test_cors_headers_on_success(self, client, headers, repo, sample_code, sample_code_hash, allowed_origin):
        repo.create_access_code(sample_code_hash)

        response = client.post("/api/start", json={"code": sample_code}, headers=headers)

        assert response.headers["access-control-allow-origin"] == allowed_origin

    def test_missing_code(self, client, headers):
        response = client.post("/api/start", json={}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing code"}

    def test_invalid_json_treated_as_empty(self, client, headers):
        response = client.post(
            "/api/start",
            content=b"{not json",
            headers=dict(headers, **{"Content-Type": "application/json"}),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing code"}

    def test_invalid_code(self, client, headers, allowed_origin):
        response = client.post("/api/start", json={"code": "wrong"}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Invalid code"}
        assert response.headers["access-control-allow-origin"] == allowed_origin

    def test_inactive_code(self, client, headers, repo, sample_code, sample_code_hash):
        repo.create_access_code(sample_code_hash, active=False)

        response = client.post("/api/start", json={"code": sample_code}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Code inactive"}

    def test_used_up_code(self, client, headers, repo, sample_code, sample_code_hash):
        repo.create_access_code(sample_code_hash, uses_remaining=1)

        assert client.post("/api/start", json={"code": sample_code}, headers=headers).status_code == 200
        response = client.post("/api/start", json={"code": sample_code}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Code has no remaining uses"}

    def test_bad_expiry_is_server_error(self, client, headers, repo, sample_code, sample_code_hash):
        repo.create_access_code(sample_code_hash, expires_at="not a date")

        response = client.post("/api/start", json={"code": sample_code}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Bad expires_at format in DB"}

    def test_prefixed_path(self, client, headers, repo, sample_code, sample_code_hash):
        """Routes match by suffix so a path prefix is tolerated."""
        repo.create_access_code(sample_code_hash)

        response = client.post("/survey/v1/api/start", json={"code": sample_code}, headers=headers)

        assert response.status_code == 200


class TestVoteEndpoint:
    """Tests for POST /api/vote."""

    def test_vote_stored(self, client, headers, repo, token, sample_vote):
        response = client.post("/api/vote", json={"token": token, "vote": sample_vote}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        stored = repo.get_vote("P004211__action_space__1")
        assert stored.preferred == "left"
        assert stored.received_at.endswith("Z")

    def test_resubmission_is_idempotent(self, client, headers, repo, token, sample_vote):
        for _ in range(3):
            response = client.post("/api/vote", json={"token": token, "vote": sample_vote}, headers=headers)
            assert response.status_code == 200

        assert repo.count_votes() == 1

    def test_alias_normalized(self, client, headers, repo, token, sample_vote):
        vote = dict(sample_vote, preferred="TOP")
        client.post("/api/vote", json={"token": token, "vote": vote}, headers=headers)

        assert repo.get_vote("P004211__action_space__1").preferred == "left"

    @pytest.mark.parametrize("body", [
        {},
        {"vote": {"participant_id": "P1"}},
        {"token": "abc"},
        {"token": "", "vote": {}},
    ])
    def test_missing_token_or_vote(self, client, headers, body):
        response = client.post("/api/vote", json=body, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing token or vote"}

    def test_bad_signature(self, client, headers, sample_vote):
        forged = make_token("not-the-secret", {"codeHash": "x"})

        response = client.post("/api/vote", json={"token": forged, "vote": sample_vote}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Bad token signature"}

    def test_non_ascii_signature(self, client, headers, sample_vote):
        response = client.post("/api/vote", json={"token": "abc.\u00e9", "vote": sample_vote}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Bad token signature"}

    def test_non_object_vote(self, client, headers, token):
        response = client.post("/api/vote", json={"token": token, "vote": ["x"]}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing field: participant_id"}

    @pytest.mark.parametrize("vote", [0, 0.0, False, ""])
    def test_falsy_vote_is_missing(self, client, headers, token, vote):
        response = client.post("/api/vote", json={"token": token, "vote": vote}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing token or vote"}

    def test_empty_vote_object_is_present(self, client, headers, token):
        response = client.post("/api/vote", json={"token": token, "vote": {}}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing field: participant_id"}

    def test_bad_format(self, client, headers, sample_vote):
        response = client.post("/api/vote", json={"token": "garbage", "vote": sample_vote}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Bad token format"}

    def test_expired_token(self, client, headers, token_secret, sample_code_hash, sample_vote):
        expired = issue_session_token(token_secret, sample_code_hash, now_ms=0)

        response = client.post("/api/vote", json={"token": expired, "vote": sample_vote}, headers=headers)

        assert response.status_code == 403
        assert response.json() == {"error": "Token expired"}

    def test_token_checked_before_fields(self, client, headers):
        response = client.post("/api/vote", json={"token": "garbage", "vote": {}}, headers=headers)

        assert response.status_code == 403

    def test_missing_field(self, client, headers, token, sample_vote):
        vote = dict(sample_vote)
        del vote["timestamp_utc"]

        response = client.post("/api/vote", json={"token": token, "vote": vote}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing field: timestamp_utc"}

    def test_bad_preferred(self, client, headers, token, sample_vote):
        vote = dict(sample_vote, preferred="both")

        response = client.post("/api/vote", json={"token": token, "vote": vote}, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"error": "preferred must be one of: left/right (or top/bottom)"}

    def test_storage_failure_is_500(self, client, headers, repo, token, sample_vote, allowed_origin):
        with patch.object(repo, "upsert_vote", side_effect=RuntimeError("disk full")):
            response = client.post("/api/vote", json={"token": token, "vote": sample_vote}, headers=headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert response.headers["access-control-allow-origin"] == allowed_origin
