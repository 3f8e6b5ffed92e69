"""
Pydantic schemas for API payloads and SDK results.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DetectionStatus(str, Enum):
    """Known status labels. Statuses stay plain strings so vendor additions pass through."""
    ANALYZING = "ANALYZING"
    AUTHENTIC = "AUTHENTIC"
    MANIPULATED = "MANIPULATED"
    ARTIFICIAL = "ARTIFICIAL"
    FAKE = "FAKE"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    ERROR = "ERROR"


# =============================================================================
# Raw API Schemas
# =============================================================================

class _WireModel(BaseModel):
    """Base for upstream payloads: camelCase aliases, unknown fields ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ResultsMetadata(_WireModel):
    final_score: float | None = Field(None, alias="finalScore")


class ResultsSummary(_WireModel):
    status: str = Field("", description="Overall status reported by the API")
    metadata: ResultsMetadata = Field(default_factory=ResultsMetadata)

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, value: Any) -> Any:
        return "" if value is None else value


class RawModelResult(_WireModel):
    """Per-model entry as returned by the media endpoint."""
    name: str = ""
    status: str = ""
    final_score: float | None = Field(None, alias="finalScore")
    data: Any = None
    code: str | None = None

    @field_validator("name", "status", mode="before")
    @classmethod
    def _null_string(cls, value: Any) -> Any:
        return "" if value is None else value


class MediaResponse(_WireModel):
    """Raw media status payload from /api/media/users/{requestId}."""
    name: str | None = None
    filename: str | None = None
    original_file_name: str | None = Field(None, alias="originalFileName")
    request_id: str = Field("", alias="requestId")
    uploaded_date: str | None = Field(None, alias="uploadedDate")
    media_type: str | None = Field(None, alias="mediaType")
    overall_status: str | None = Field(None, alias="overallStatus")
    results_summary: ResultsSummary = Field(
        default_factory=ResultsSummary, alias="resultsSummary"
    )
    models: list[RawModelResult] = Field(default_factory=list)

    @field_validator("results_summary", mode="before")
    @classmethod
    def _null_summary(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("models", mode="before")
    @classmethod
    def _null_models(cls, value: Any) -> Any:
        return [] if value is None else value


class AllMediaResponse(_WireModel):
    """Raw paginated media listing."""
    total_items: int = Field(0, alias="totalItems")
    total_pages: int = Field(0, alias="totalPages")
    current_page: int = Field(0, alias="currentPage")
    current_page_items_count: int = Field(0, alias="currentPageItemsCount")
    media_list: list[MediaResponse] = Field(default_factory=list, alias="mediaList")

    @field_validator("media_list", mode="before")
    @classmethod
    def _null_media_list(cls, value: Any) -> Any:
        return [] if value is None else value


class SignedURLPayload(_WireModel):
    signed_url: str = Field(..., alias="signedUrl")


class SignedURLResponse(_WireModel):
    """Response of the presigned upload URL request."""
    code: str | None = None
    response: SignedURLPayload
    errno: int | None = None
    media_id: str | None = Field(None, alias="mediaId")
    request_id: str = Field(..., alias="requestId")


class APIResponse(_WireModel):
    """Generic API envelope used by the social media endpoint."""
    code: str | None = None
    response: str | None = None
    errno: int | None = None
    request_id: str | None = Field(None, alias="requestId")


# =============================================================================
# Result Schemas
# =============================================================================

class ModelResult(BaseModel):
    """Verdict of a single detection model."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Model name")
    status: str = Field(..., description="Model status determination")
    score: float | None = Field(None, description="Confidence score (0-1), None if unavailable")


class DetectionResult(BaseModel):
    """Normalized outcome of one analysis job."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    request_id: str = Field(..., alias="requestId", description="Request that produced the result")
    status: str = Field(..., description="Overall status, e.g. MANIPULATED or AUTHENTIC")
    score: float | None = Field(None, description="Confidence score (0-1), None while analyzing")
    models: tuple[ModelResult, ...] = Field(
        default_factory=tuple, description="Per-model results in API order"
    )


class DetectionResultList(BaseModel):
    """One page of historical detection results."""
    model_config = ConfigDict(frozen=True)

    total_items: int = Field(..., description="Total number of items available")
    current_page_items_count: int = Field(..., description="Items on the current page")
    total_pages: int = Field(..., description="Total number of pages")
    current_page: int = Field(..., description="Current page number")
    items: tuple[DetectionResult, ...] = Field(default_factory=tuple)


class UploadResult(BaseModel):
    """Identifiers returned by a successful upload."""
    model_config = ConfigDict(frozen=True)

    request_id: str = Field(..., description="ID used to retrieve results")
    media_id: str | None = Field(None, description="Media ID assigned by the platform")
