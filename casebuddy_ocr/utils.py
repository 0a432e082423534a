"""
utils.py

Local file loading and validation for the extraction pipeline.

Handles:
- File path sanitization against path traversal
- Extension and media-type checks
- File size enforcement
- Reading the raw bytes handed to the pipeline
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from . import config
from .errors import DocumentFileError, DocumentSecurityError

logger = logging.getLogger(__name__)


def sanitize_path(file_path: Union[str, Path]) -> Path:
    """
    Validate and sanitize a file path.

    Args:
        file_path: Raw file path string or Path object.

    Returns:
        Resolved, sanitized Path object.

    Raises:
        DocumentSecurityError: If path traversal or a symlink is detected.
        DocumentFileError: If the file does not exist or is not a regular file.
    """
    raw = str(file_path)
    if ".." in Path(raw).parts:
        raise DocumentSecurityError(f"Path traversal detected in: {raw}")

    if Path(raw).is_symlink():
        raise DocumentSecurityError(f"Symlinks are not allowed: {raw}")

    path = Path(raw).resolve()

    if not path.exists():
        raise DocumentFileError(f"File not found: {path}")

    if not path.is_file():
        raise DocumentFileError(f"Not a regular file: {path}")

    return path


def detect_media_type(file_path: Union[str, Path]) -> str:
    """Map a file extension to one of the accepted media types."""
    ext = Path(file_path).suffix.lower()
    media_type = config.EXTENSION_MEDIA_TYPES.get(ext)
    if media_type is None or media_type not in config.ACCEPTED_MEDIA_TYPES:
        raise DocumentFileError(
            f"Unsupported file extension '{ext}'. "
            f"Allowed: {sorted(config.EXTENSION_MEDIA_TYPES)}"
        )
    return media_type


def validate_file(file_path: Path, max_file_size_mb: Optional[float] = None) -> None:
    """
    Validate file size.

    Raises:
        DocumentFileError: If the file is empty or too large.
    """
    if max_file_size_mb is None:
        max_file_size_mb = config.MAX_FILE_SIZE_MB

    size = file_path.stat().st_size
    if size == 0:
        raise DocumentFileError(f"File is empty: {file_path}")

    size_mb = size / (1024 * 1024)
    if size_mb > max_file_size_mb:
        raise DocumentFileError(
            f"File too large: {size_mb:.1f}MB exceeds "
            f"limit of {max_file_size_mb}MB"
        )


def load_document(file_path: Union[str, Path]) -> Tuple[bytes, str]:
    """
    Read a local document for the pipeline.

    Returns:
        (file_bytes, media_type)

    Raises:
        DocumentFileError: If validation or reading fails.
        DocumentSecurityError: If path validation fails.
    """
    path = sanitize_path(file_path)
    media_type = detect_media_type(path)
    validate_file(path)

    logger.info("Loading file: %s (type: %s)", path.name, media_type)
    try:
        return path.read_bytes(), media_type
    except OSError as e:
        raise DocumentFileError(f"Failed to read {path.name}: {e}") from e
