"""
Social media link submission.
"""

from urllib.parse import urlparse

from pydantic import ValidationError

from realitydefender.errors import ErrorCode, SDKError
from realitydefender.logging_config import get_logger
from realitydefender.metrics import record_upload
from realitydefender.schemas import APIResponse, UploadResult
from realitydefender.services.http_client import HTTPClient

logger = get_logger(__name__)

SOCIAL_MEDIA_ENDPOINT = "/api/files/social"
ALLOWED_SCHEMES = {"http", "https"}


def validate_social_link(social_link: str) -> str:
    """Ensure the link is an absolute http(s) URL with a host."""
    if not social_link:
        raise SDKError("Social media link is required", ErrorCode.INVALID_REQUEST)

    try:
        parsed = urlparse(social_link)
        # Accessing the port validates it, urlparse alone does not
        parsed.port
    except ValueError as e:
        raise SDKError(f"Invalid social media link: {e}", ErrorCode.INVALID_REQUEST) from e

    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.hostname:
        raise SDKError(
            f"Invalid social media link: {social_link}", ErrorCode.INVALID_REQUEST
        )
    return social_link


async def upload_social_media_link(http: HTTPClient, social_link: str) -> UploadResult:
    """
    Submit a social media link for analysis.

    Raises:
        SDKError: invalid_request for a bad link, upload_failed when the API
            rejects the submission, server_error for an unusable response
    """
    validate_social_link(social_link)

    try:
        body = await http.post(SOCIAL_MEDIA_ENDPOINT, {"socialLink": social_link})
    except SDKError as e:
        record_upload("social", "error", enabled=http.metrics_enabled)
        raise SDKError(
            f"Social media link upload failed: {e}", ErrorCode.UPLOAD_FAILED
        ) from e

    try:
        response = APIResponse.model_validate_json(body)
    except ValidationError as e:
        record_upload("social", "error", enabled=http.metrics_enabled)
        raise SDKError(f"Invalid response from API: {e}", ErrorCode.SERVER_ERROR) from e

    if not response.request_id:
        record_upload("social", "error", enabled=http.metrics_enabled)
        raise SDKError("Invalid response from API", ErrorCode.SERVER_ERROR)

    record_upload("social", "success", enabled=http.metrics_enabled)
    logger.info("Submitted social media link", extra={"request_id": response.request_id})
    return UploadResult(request_id=response.request_id)
