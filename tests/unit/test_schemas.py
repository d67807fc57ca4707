"""Tests for submission request/response schemas."""

import pytest
from pydantic import ValidationError

from portal.moderation.schemas import (
    ApproveRequest,
    MediaResponse,
    RejectRequest,
    SubmissionCreate,
    SubmissionResponse,
    SubmissionUpdate,
)
from portal.moderation.state_machine import SubmissionStatus


class TestSubmissionCreate:
    def test_terms_from_comma_string(self):
        req = SubmissionCreate(title="Demo", tags="ai, ml,, ai ", stack=["python", " fastapi "])
        assert req.tags == ["ai", "ml"]
        assert req.stack == ["python", "fastapi"]

    def test_title_required(self):
        with pytest.raises(ValidationError):
            SubmissionCreate(title="")

    def test_media_type_defaults_to_image(self):
        req = SubmissionCreate(title="Demo", media=[{"url": "/uploads/a.png"}])
        assert req.media[0].type.value == "IMAGE"

    def test_unknown_media_type(self):
        with pytest.raises(ValidationError):
            SubmissionCreate(title="Demo", media=[{"url": "/a.gif", "type": "AUDIO"}])

    def test_negative_cover_index(self):
        with pytest.raises(ValidationError):
            SubmissionCreate(title="Demo", cover_index=-1)


class TestTransitionRequests:
    def test_blank_reason_is_accepted_by_schema(self):
        # Blank text is rejected by the service with its own validation error.
        assert RejectRequest(reason="").reason == ""

    def test_approve_defaults_unfeatured(self):
        req = ApproveRequest()
        assert req.featured is False
        assert req.expected_status is None

    def test_approve_expected_status(self):
        assert ApproveRequest(expected_status="FEATURED").expected_status is SubmissionStatus.FEATURED
        with pytest.raises(ValidationError):
            ApproveRequest(expected_status="ARCHIVED")

    def test_update_has_no_status_field(self):
        assert "status" not in SubmissionUpdate.model_fields


class TestResponses:
    def test_media_from_orm_column_name(self):
        media = MediaResponse.model_validate({"id": 1, "url": "/a.png", "media_type": "VIDEO"})
        assert media.type == "VIDEO"

    def test_submission_response_from_dict(self):
        resp = SubmissionResponse.model_validate(
            {
                "id": 7,
                "kind": "project",
                "owner_id": 1,
                "title": "Demo",
                "status": "APPROVED",
                "media": [{"id": 1, "url": "/a.png", "type": "IMAGE", "position": 0}],
            }
        )
        assert resp.media[0].url == "/a.png"
        assert resp.tags == []
