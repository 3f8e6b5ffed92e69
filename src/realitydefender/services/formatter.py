"""
Result formatting: raw media payloads to normalized DetectionResult objects.

Pure functions only. Malformed JSON is rejected earlier, when the payload is
validated into MediaResponse.
"""

from collections.abc import Mapping
from typing import Any

from realitydefender.schemas import (
    AllMediaResponse,
    DetectionResult,
    DetectionResultList,
    MediaResponse,
    ModelResult,
)
from realitydefender.settings import DEFAULT_MANIPULATED_LABEL

UPSTREAM_FAKE_LABEL = "FAKE"


def normalize_score(score: float | None) -> float | None:
    """
    Rescale a score into the unit interval.

    The API reports scores either as 0-1 or as 0-100; anything above 1 is
    treated as a percentage.
    """
    if score is None:
        return None
    if score > 1.0:
        return score / 100.0
    return score


def rewrite_status(status: str, manipulated_label: str = DEFAULT_MANIPULATED_LABEL) -> str:
    """Replace the upstream FAKE label, pass every other status through."""
    if status == UPSTREAM_FAKE_LABEL:
        return manipulated_label
    return status


def format_result(
    payload: MediaResponse | Mapping[str, Any],
    manipulated_label: str = DEFAULT_MANIPULATED_LABEL,
) -> DetectionResult:
    """
    Format a raw media payload into a DetectionResult.

    Args:
        payload: MediaResponse, or the decoded JSON mapping of one
        manipulated_label: Label used in place of FAKE

    Returns:
        Normalized detection result with model order preserved
    """
    if not isinstance(payload, MediaResponse):
        payload = MediaResponse.model_validate(payload)

    models = tuple(
        ModelResult(
            name=model.name,
            status=rewrite_status(model.status, manipulated_label),
            score=normalize_score(model.final_score),
        )
        for model in payload.models
    )

    return DetectionResult(
        request_id=payload.request_id,
        status=rewrite_status(payload.results_summary.status, manipulated_label),
        score=normalize_score(payload.results_summary.metadata.final_score),
        models=models,
    )


def format_results(
    payload: AllMediaResponse,
    manipulated_label: str = DEFAULT_MANIPULATED_LABEL,
) -> DetectionResultList:
    """Format one page of the media listing."""
    return DetectionResultList(
        total_items=payload.total_items,
        total_pages=payload.total_pages,
        current_page=payload.current_page,
        current_page_items_count=payload.current_page_items_count,
        items=tuple(format_result(media, manipulated_label) for media in payload.media_list),
    )
