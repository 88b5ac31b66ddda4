"""
File validation utilities for CareBoard.

Handles validation of selected report images including:
- Declared media type
- File size limits
- Corruption detection for formats Pillow can decode
"""

import io
from typing import Optional, Tuple

from PIL import Image

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger("file_validators")


class FileValidationError(Exception):
    """Raised when file validation fails."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


def decodable_image_types() -> frozenset:
    """Media types with a registered Pillow decoder."""
    Image.init()
    return frozenset(Image.MIME.values())


class FileValidator:
    """
    Validates report images before they are sent for analysis.

    Ensures files are:
    - Declared as an image media type
    - Not empty and within size limits
    - Readable by Pillow, when Pillow knows the format

    Image types Pillow has no decoder for (HEIC/HEIF phone photos, for
    example) are accepted on their declared type and left to the model.
    """

    INVALID_IMAGE_MESSAGE = "Please upload a valid image file."

    def __init__(self, max_file_size: Optional[int] = None):
        self.max_file_size = max_file_size or settings.max_file_size_bytes
        self.decodable_types = decodable_image_types()

    @staticmethod
    def is_image_type(content_type: Optional[str]) -> bool:
        return bool(content_type) and content_type.startswith("image/")

    def validate_media_type(self, content_type: Optional[str]) -> bool:
        """
        Check that the declared media type is an image.

        Raises:
            FileValidationError: If the type is missing or not image/*
        """
        if not self.is_image_type(content_type):
            raise FileValidationError(f"Media type {content_type!r} is not an image")
        return True

    def validate_file_size(self, file_content: bytes, filename: str) -> bool:
        """
        Check that the file is not empty and within size limits.

        Raises:
            FileValidationError: If file is empty or exceeds size limit
        """
        if len(file_content) == 0:
            raise FileValidationError(f"File '{filename}' is empty")
        if len(file_content) > self.max_file_size:
            raise FileValidationError(
                f"File '{filename}' exceeds maximum size of {self.max_file_size // (1024 * 1024)}MB"
            )
        return True

    def validate_integrity(self, file_content: bytes, content_type: str) -> bool:
        """
        Run Pillow's integrity check on formats it can decode.

        Raises:
            FileValidationError: If Pillow cannot read a format it supports
        """
        if content_type not in self.decodable_types:
            return True
        try:
            with Image.open(io.BytesIO(file_content)) as img:
                img.verify()
        except Exception as e:
            raise FileValidationError(f"Unreadable {content_type} data: {e}") from e
        return True

    def validate_image(
        self,
        file_content: bytes,
        filename: str,
        content_type: Optional[str]
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate a report image.

        Args:
            file_content: Raw image bytes
            filename: Original filename
            content_type: Declared media type

        Returns:
            Tuple of (is_valid, error_message). The message is always the
            plain user-facing one; the reason is logged.
        """
        try:
            self.validate_media_type(content_type)
            self.validate_file_size(file_content, filename)
            self.validate_integrity(file_content, content_type)
            return True, None

        except FileValidationError as e:
            logger.warning(
                "Image validation failed",
                filename=filename,
                content_type=content_type,
                reason=e.message
            )
            return False, self.INVALID_IMAGE_MESSAGE


# Singleton instance for easy access
file_validator = FileValidator()
