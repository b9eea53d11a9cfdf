"""Evidence validation for market resolution.

A resolution needs at least one item, every item needs a known type and
non-empty content, url items must be absolute http(s) URLs, and at least
one item must be a url or a written description (a screenshot alone is not
enough).
"""

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.pm_common.enums import EvidenceType
from src.pm_common.errors import InvalidEvidenceError
from src.pm_resolution.domain.models import Evidence

_HTTP_URL = TypeAdapter(AnyHttpUrl)
_VALID_TYPES = {t.value for t in EvidenceType}
_PRIMARY_TYPES = {EvidenceType.URL.value, EvidenceType.DESCRIPTION.value}


def _check_item(index: int, item: Evidence) -> None:
    if item.type not in _VALID_TYPES:
        raise InvalidEvidenceError(
            f"item {index} has unknown type '{item.type}' "
            f"(expected one of {', '.join(sorted(_VALID_TYPES))})"
        )
    if not item.content or not item.content.strip():
        raise InvalidEvidenceError(f"item {index} has empty content")
    if item.type == EvidenceType.URL:
        try:
            _HTTP_URL.validate_python(item.content.strip())
        except PydanticValidationError:
            raise InvalidEvidenceError(
                f"item {index} is not an absolute http(s) URL: {item.content!r}"
            ) from None


def validate_evidence(evidence: list[Evidence]) -> list[Evidence]:
    """Return the evidence with content stripped, or raise InvalidEvidenceError."""
    if not evidence:
        raise InvalidEvidenceError("at least one evidence item is required")
    for index, item in enumerate(evidence):
        _check_item(index, item)
    if not any(item.type in _PRIMARY_TYPES for item in evidence):
        raise InvalidEvidenceError("at least one url or description item is required")
    return [
        Evidence(type=item.type, content=item.content.strip(), description=item.description)
        for item in evidence
    ]
