"""Tests for the law comment and law document HTTP endpoints."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from lawcomments.comments.dependencies import get_moderation_service
from lawcomments.comments.models import CommentState
from lawcomments.comments.service import (
    APPROVED_MESSAGE,
    SUBMITTED_MESSAGE,
    UNCHANGED_MESSAGE,
    ModerationService,
)
from lawcomments.main import app

from .conftest import InMemoryModerationStore


ADMIN_URL = "/v1/admin/law-comments"


@pytest.fixture
def api(client: TestClient, moderation_service: ModerationService) -> TestClient:
    """Client wired to an in-memory moderation service."""
    app.dependency_overrides[get_moderation_service] = lambda: moderation_service
    return client


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


def submit(api: TestClient, **overrides):
    body = {"paragraph_id": 3, "display_name": "Dana", "content": "טקסט תקין"}
    body.update(overrides)
    return api.post("/v1/law-comments", json=body)


def submitted_id(response) -> str:
    assert response.status_code == 201
    return response.json()["data"]["comment_id"]


class TestSubmitEndpoint:
    """Tests for POST /v1/law-comments."""

    def test_created(self, api: TestClient, store: InMemoryModerationStore):
        response = submit(api)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["message"] == SUBMITTED_MESSAGE
        assert data["data"]["paragraph_id"] == 3
        assert "submitter_address" not in data["data"]
        assert "state" not in data["data"]

        (comment,) = store.comments.values()
        assert comment.state == CommentState.PENDING
        assert comment.submitter_address == "testclient"
        assert comment.user_agent == "testclient"

    def test_validation_errors(self, api: TestClient):
        response = submit(api, content="abc", paragraph_id=99)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "validation_error"
        assert set(data["errors"]) == {"content", "paragraph_id"}

    def test_missing_body_is_a_validation_error(self, api: TestClient):
        response = api.post("/v1/law-comments")

        assert response.status_code == 400
        assert response.json()["error_code"] == "validation_error"

    def test_malformed_json_uses_the_uniform_shape(self, api: TestClient):
        response = api.post(
            "/v1/law-comments",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "validation_error"
        assert "__root__" in data["errors"]

    def test_json_array_body_is_a_validation_error(self, api: TestClient):
        response = api.post("/v1/law-comments", json=[1, 2])

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_duplicate(self, api: TestClient):
        submit(api)

        response = submit(api)

        assert response.status_code == 409
        assert response.json()["error_code"] == "duplicate"

    def test_rate_limited(self, api: TestClient):
        for i in range(5):
            assert submit(api, paragraph_id=i + 1).status_code == 201

        response = submit(api, paragraph_id=1, content="תגובה אחרת לגמרי")

        assert response.status_code == 429
        data = response.json()
        assert data["error_code"] == "rate_limited"
        assert data["retry_after"] > 0
        assert response.headers["Retry-After"] == str(data["retry_after"])

    def test_spam_is_accepted_but_hidden(
        self, api: TestClient, store: InMemoryModerationStore
    ):
        response = submit(api, content="Visit our casino tonight")

        assert response.status_code == 201
        (comment,) = store.comments.values()
        assert comment.state == CommentState.REJECTED

    def test_forwarded_address_ignored_from_untrusted_peer(
        self, api: TestClient, store: InMemoryModerationStore
    ):
        api.post(
            "/v1/law-comments",
            json={"paragraph_id": 3, "display_name": "Dana", "content": "טקסט תקין"},
            headers={"X-Forwarded-For": "198.51.100.7"},
        )

        (comment,) = store.comments.values()
        assert comment.submitter_address == "testclient"

    def test_service_unavailable(self, client: TestClient):
        response = submit(client)

        assert response.status_code == 503


class TestAdminAuthorization:
    """Admin routes require an administrator token."""

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("get", ADMIN_URL),
            ("get", f"{ADMIN_URL}/stats"),
            ("delete", f"{ADMIN_URL}/{uuid4()}"),
        ],
    )
    def test_anonymous_is_rejected(self, api: TestClient, method: str, path: str):
        response = getattr(api, method)(path)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_non_admin_role_is_rejected(self, api: TestClient, user_token: str):
        response = api.get(ADMIN_URL, headers={"Authorization": f"Bearer {user_token}"})

        assert response.status_code == 401

    def test_invalid_token_is_rejected(self, api: TestClient):
        response = api.get(ADMIN_URL, headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401

    def test_anonymous_moderation_changes_nothing(
        self, api: TestClient, store: InMemoryModerationStore
    ):
        comment_id = submitted_id(submit(api))

        response = api.post(
            f"{ADMIN_URL}/{comment_id}/moderate", json={"decision": "approved"}
        )

        assert response.status_code == 401
        (comment,) = store.comments.values()
        assert comment.state == CommentState.PENDING


class TestAdminList:
    """Tests for GET /v1/admin/law-comments."""

    def test_lists_comments(self, api: TestClient, admin_headers: dict[str, str]):
        submit(api, paragraph_id=1)
        submit(api, paragraph_id=2)

        response = api.get(ADMIN_URL, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["total_pages"] == 1
        assert data["anchor"]
        assert data["items"][0]["submitter_address"] == "testclient"
        assert data["items"][0]["state"] == "pending"

    def test_filters(self, api: TestClient, admin_headers: dict[str, str]):
        submit(api, paragraph_id=1)
        submit(api, paragraph_id=2, content="הערה על סעיף שני")

        response = api.get(
            ADMIN_URL, params={"paragraph_id": 2, "state": "pending"}, headers=admin_headers
        )

        items = response.json()["items"]
        assert [i["paragraph_id"] for i in items] == [2]

    def test_search(self, api: TestClient, admin_headers: dict[str, str]):
        submit(api, paragraph_id=1, content="הערה על מיסוי")
        submit(api, paragraph_id=2, content="הערה על תחבורה")

        response = api.get(ADMIN_URL, params={"search": "מיסוי"}, headers=admin_headers)

        assert response.json()["total"] == 1

    def test_page_size(self, api: TestClient, admin_headers: dict[str, str]):
        for i in range(3):
            submit(api, paragraph_id=i + 1)

        response = api.get(ADMIN_URL, params={"page_size": 2}, headers=admin_headers)

        data = response.json()
        assert len(data["items"]) == 2
        assert data["total_pages"] == 2

    def test_invalid_anchor(self, api: TestClient, admin_headers: dict[str, str]):
        response = api.get(ADMIN_URL, params={"anchor": "%%%"}, headers=admin_headers)

        assert response.status_code == 400
        assert "anchor" in response.json()["errors"]

    def test_inverted_date_range(self, api: TestClient, admin_headers: dict[str, str]):
        response = api.get(
            ADMIN_URL,
            params={"date_from": "2024-05-02T00:00:00Z", "date_to": "2024-05-01T00:00:00Z"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_unknown_state(self, api: TestClient, admin_headers: dict[str, str]):
        response = api.get(ADMIN_URL, params={"state": "deleted"}, headers=admin_headers)

        assert response.status_code == 422


class TestAdminModerate:
    """Tests for the moderation endpoints."""

    def test_approve(
        self,
        api: TestClient,
        admin_headers: dict[str, str],
        store: InMemoryModerationStore,
    ):
        comment_id = submitted_id(submit(api))

        response = api.post(
            f"{ADMIN_URL}/{comment_id}/moderate",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["changed"] is True
        assert data["message"] == APPROVED_MESSAGE
        assert data["comment"]["state"] == "approved"
        assert data["comment"]["moderated_by"] == "admin@example.org"

    def test_same_decision_twice(self, api: TestClient, admin_headers: dict[str, str]):
        comment_id = submitted_id(submit(api))
        url = f"{ADMIN_URL}/{comment_id}/moderate"
        api.post(url, json={"decision": "approved"}, headers=admin_headers)

        response = api.post(url, json={"decision": "approved"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["changed"] is False
        assert response.json()["message"] == UNCHANGED_MESSAGE

    def test_reject_with_reason(self, api: TestClient, admin_headers: dict[str, str]):
        comment_id = submitted_id(submit(api))

        response = api.post(
            f"{ADMIN_URL}/{comment_id}/moderate",
            json={"decision": "rejected", "reason": "לא רלוונטי"},
            headers=admin_headers,
        )

        assert response.json()["comment"]["rejection_reason"] == "לא רלוונטי"

    def test_pending_is_not_a_decision(
        self, api: TestClient, admin_headers: dict[str, str]
    ):
        comment_id = submitted_id(submit(api))

        response = api.post(
            f"{ADMIN_URL}/{comment_id}/moderate",
            json={"decision": "pending"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_unknown_comment(self, api: TestClient, admin_headers: dict[str, str]):
        response = api.post(
            f"{ADMIN_URL}/{uuid4()}/moderate",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 404

    def test_bulk(self, api: TestClient, admin_headers: dict[str, str]):
        first = submitted_id(submit(api, paragraph_id=1))
        second = submitted_id(submit(api, paragraph_id=2))
        missing = str(uuid4())

        response = api.post(
            f"{ADMIN_URL}/bulk-moderate",
            json={"comment_ids": [first, second, missing], "decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == 2
        assert data["failed"] == 1
        failed = next(r for r in data["results"] if not r["success"])
        assert failed["comment_id"] == missing
        assert failed["error_code"] == "comment_not_found"

    def test_bulk_requires_ids(self, api: TestClient, admin_headers: dict[str, str]):
        response = api.post(
            f"{ADMIN_URL}/bulk-moderate",
            json={"comment_ids": [], "decision": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 422


class TestAdminStatsAndDelete:
    """Tests for stats and deletion."""

    def test_stats(self, api: TestClient, admin_headers: dict[str, str]):
        comment_id = submitted_id(submit(api, paragraph_id=1))
        submit(api, paragraph_id=2)
        api.post(
            f"{ADMIN_URL}/{comment_id}/moderate",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        response = api.get(f"{ADMIN_URL}/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert (data["total"], data["pending"], data["approved"], data["rejected"]) == (
            2,
            1,
            1,
            0,
        )
        assert {p["paragraph_id"] for p in data["by_paragraph"]} == {1, 2}

    def test_delete(
        self,
        api: TestClient,
        admin_headers: dict[str, str],
        store: InMemoryModerationStore,
    ):
        comment_id = submitted_id(submit(api))

        response = api.delete(f"{ADMIN_URL}/{comment_id}", headers=admin_headers)

        assert response.status_code == 200
        assert store.comments == {}
        again = api.delete(f"{ADMIN_URL}/{comment_id}", headers=admin_headers)
        assert again.status_code == 404


class TestLawDocumentEndpoints:
    """Tests for the public law document view."""

    def test_document_with_counts(self, api: TestClient, admin_headers: dict[str, str]):
        comment_id = submitted_id(submit(api, paragraph_id=2))
        submit(api, paragraph_id=3)
        api.post(
            f"{ADMIN_URL}/{comment_id}/moderate",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        response = api.get("/v1/law-document")

        assert response.status_code == 200
        data = response.json()
        assert [p["paragraph_id"] for p in data["paragraphs"]] == [1, 2, 3, 4, 5]
        counts = {p["paragraph_id"]: p["comment_count"] for p in data["paragraphs"]}
        assert counts == {1: 0, 2: 1, 3: 0, 4: 0, 5: 0}

    def test_no_active_document(
        self, api: TestClient, moderation_service: ModerationService
    ):
        moderation_service.documents.document = None

        response = api.get("/v1/law-document")

        assert response.status_code == 404

    def test_only_approved_comments_are_listed(
        self, api: TestClient, admin_headers: dict[str, str]
    ):
        approved = submitted_id(submit(api, content="הערה שאושרה"))
        submit(api, content="הערה שממתינה לאישור")
        api.post(
            f"{ADMIN_URL}/{approved}/moderate",
            json={"decision": "approved"},
            headers=admin_headers,
        )

        response = api.get("/v1/law-document/paragraphs/3/comments")

        assert response.status_code == 200
        data = response.json()
        assert [c["comment_id"] for c in data] == [approved]
        assert "submitter_address" not in data[0]

    def test_unknown_paragraph(self, api: TestClient):
        response = api.get("/v1/law-document/paragraphs/99/comments")

        assert response.status_code == 404

    def test_limit_bounds(self, api: TestClient):
        response = api.get("/v1/law-document/paragraphs/3/comments", params={"limit": 0})

        assert response.status_code == 422
