"""Unit tests for resolution evidence validation."""

import pytest

from src.pm_common.errors import InvalidEvidenceError
from src.pm_resolution.domain.evidence import validate_evidence
from src.pm_resolution.domain.models import Evidence


def test_accepts_url_and_description() -> None:
    result = validate_evidence([
        Evidence("url", "https://example.com/results"),
        Evidence("description", "Official announcement on the league site"),
    ])
    assert len(result) == 2


def test_strips_content() -> None:
    (item,) = validate_evidence([Evidence("url", "  https://example.com/a  ")])
    assert item.content == "https://example.com/a"


def test_screenshot_alongside_description_accepted() -> None:
    validate_evidence([
        Evidence("screenshot", "s3://bucket/shot.png"),
        Evidence("description", "Final score shown on broadcast"),
    ])


def test_empty_list_rejected() -> None:
    with pytest.raises(InvalidEvidenceError):
        validate_evidence([])


def test_unknown_type_rejected() -> None:
    with pytest.raises(InvalidEvidenceError, match="unknown type"):
        validate_evidence([Evidence("video", "https://example.com/v")])


@pytest.mark.parametrize("content", ["", "   "])
def test_empty_content_rejected(content: str) -> None:
    with pytest.raises(InvalidEvidenceError, match="empty content"):
        validate_evidence([Evidence("description", content)])


@pytest.mark.parametrize("url", ["example.com/page", "ftp://example.com/file", "not a url"])
def test_url_must_be_absolute_http(url: str) -> None:
    with pytest.raises(InvalidEvidenceError, match="http"):
        validate_evidence([Evidence("url", url)])


def test_screenshot_only_rejected() -> None:
    with pytest.raises(InvalidEvidenceError, match="url or description"):
        validate_evidence([Evidence("screenshot", "s3://bucket/shot.png")])


def test_error_is_validation_category() -> None:
    with pytest.raises(InvalidEvidenceError) as exc_info:
        validate_evidence([])
    assert exc_info.value.category == "validation"
    assert exc_info.value.http_status == 422
