"""
File upload via presigned URLs.
"""

from dataclasses import dataclass
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from realitydefender.errors import ErrorCode, SDKError
from realitydefender.logging_config import get_logger
from realitydefender.metrics import record_upload
from realitydefender.schemas import SignedURLResponse, UploadResult
from realitydefender.services.http_client import HTTPClient

logger = get_logger(__name__)

SIGNED_URL_ENDPOINT = "/api/files/aws-presigned"


@dataclass(frozen=True)
class FileTypeConfig:
    """Supported extensions sharing one size limit."""
    extensions: tuple[str, ...]
    size_limit: int  # bytes


SUPPORTED_FILE_TYPES: tuple[FileTypeConfig, ...] = (
    FileTypeConfig(extensions=(".mp4", ".mov"), size_limit=262144000),  # ~250 MB
    FileTypeConfig(
        extensions=(".jpg", ".png", ".jpeg", ".gif", ".webp"),
        size_limit=52428800,  # ~50 MB
    ),
    FileTypeConfig(
        extensions=(".flac", ".wav", ".mp3", ".m4a", ".aac", ".alac", ".ogg"),
        size_limit=20971520,  # ~20 MB
    ),
    FileTypeConfig(extensions=(".txt",), size_limit=5242880),  # ~5 MB
)


def get_size_limit(extension: str) -> int | None:
    """Size limit in bytes for an extension, or None if the type is unsupported."""
    extension = extension.lower()
    for file_type in SUPPORTED_FILE_TYPES:
        if extension in file_type.extensions:
            return file_type.size_limit
    return None


def validate_file(file_path: str | Path) -> Path:
    """
    Check that a file exists, has a supported type and fits the size limit.

    Returns:
        The file path as a Path

    Raises:
        SDKError: invalid_file or file_too_large
    """
    if not file_path:
        raise SDKError("file path is required", ErrorCode.INVALID_FILE)

    path = Path(file_path)
    if not path.is_file():
        raise SDKError(f"file not found: {file_path}", ErrorCode.INVALID_FILE)

    extension = path.suffix.lower()
    size_limit = get_size_limit(extension)
    if size_limit is None:
        raise SDKError(f"Unsupported file type: {extension}", ErrorCode.INVALID_FILE)

    if path.stat().st_size > size_limit:
        raise SDKError(f"File too large to upload: {file_path}", ErrorCode.FILE_TOO_LARGE)

    return path


async def get_signed_url(http: HTTPClient, file_name: str) -> SignedURLResponse:
    """Request a presigned upload URL for a file name."""
    body = await http.post(SIGNED_URL_ENDPOINT, {"fileName": file_name})
    try:
        return SignedURLResponse.model_validate_json(body)
    except ValidationError as e:
        raise SDKError(
            f"failed to parse signed URL response: {e}", ErrorCode.UNKNOWN_ERROR
        ) from e


async def upload_to_signed_url(http: HTTPClient, signed_url: str, path: Path) -> None:
    """Read the file and PUT its bytes to the presigned URL."""
    try:
        async with aiofiles.open(path, "rb") as f:
            content = await f.read()
    except OSError as e:
        raise SDKError(f"failed to read file: {e}", ErrorCode.INVALID_FILE) from e

    try:
        await http.put(signed_url, content)
    except SDKError as e:
        raise SDKError(
            f"failed to upload to signed URL: {e.message}", ErrorCode.UPLOAD_FAILED
        ) from e


async def upload_file(http: HTTPClient, file_path: str | Path) -> UploadResult:
    """
    Upload a local file for analysis.

    Args:
        http: Transport used for the API calls
        file_path: Path to the media file

    Returns:
        Request and media IDs used to track the analysis
    """
    path = validate_file(file_path)

    try:
        signed = await get_signed_url(http, path.name)
        await upload_to_signed_url(http, signed.response.signed_url, path)
    except SDKError:
        record_upload("file", "error", enabled=http.metrics_enabled)
        raise

    record_upload("file", "success", enabled=http.metrics_enabled)
    logger.info(
        f"Uploaded {path.name} for analysis",
        extra={"request_id": signed.request_id, "media_id": signed.media_id},
    )
    return UploadResult(request_id=signed.request_id, media_id=signed.media_id)
