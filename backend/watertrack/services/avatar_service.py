"""
WaterTrack Backend: Avatar Storage Service
==========================================

What:  Validates, crops and stores user avatar images; resolves them for serving.
How:   Checks extension and size, verifies the content with Pillow, center-crops
       to a square PNG and writes it under STORAGE_ROOT/avatars with a UUID name.
Who:   Called by PATCH /user/avatars and GET /avatars/{filename}.

Security Model:
    1. Extension check:  fast rejection of obviously wrong uploads
    2. Size check:       bounded before decoding
    3. Content check:    Pillow must recognize and verify the image data
    4. Re-encoding:      only the re-encoded PNG is stored, never the upload
    5. UUID filename:    no user input reaches the file system path
    6. Serving:          names must match the generated pattern and resolve
                         inside the avatars directory
"""

import io
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
from PIL import Image, ImageOps, UnidentifiedImageError

from watertrack.config import settings
from watertrack.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}
# Pillow format names accepted after decoding
ALLOWED_FORMATS = {"PNG", "JPEG", "WEBP"}

AVATAR_URL_PREFIX = "/avatars/"
_AVATAR_NAME = re.compile(r"^[0-9a-f]{32}\.png$")


class AvatarService:
    """
    Avatar upload pipeline.

    Lifecycle of an upload:
        1. validate_extension() and validate_size()
        2. process_image(): decode, verify, crop to AVATAR_SIZE², encode PNG
        3. store(): async write to avatars/<uuid>.png
        4. The caller saves "/avatars/<uuid>.png" on the user
        5. remove_previous(): best-effort delete of the replaced file
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.avatar_dir = Path(storage_root or settings.storage_root).resolve() / "avatars"
        self.avatar_dir.mkdir(parents=True, exist_ok=True)
        logger.info("AvatarService initialized with avatar_dir=%s", self.avatar_dir)

    def validate_extension(self, filename: str) -> str:
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="avatar",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="Select an avatar file to upload", field="avatar")
        if size > settings.max_avatar_size:
            max_mb = settings.max_avatar_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="avatar",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def process_image(self, content: bytes) -> bytes:
        """
        Decode, verify and crop an uploaded image.

        Returns:
            PNG bytes of a square AVATAR_SIZE x AVATAR_SIZE image

        Raises:
            ValidationError: content is not a supported, intact image
        """
        try:
            with Image.open(io.BytesIO(content)) as probe:
                image_format = probe.format
                probe.verify()
            # verify() leaves the image unusable; decode again for processing
            with Image.open(io.BytesIO(content)) as image:
                image = ImageOps.exif_transpose(image)
                cropped = ImageOps.fit(
                    image.convert("RGBA"),
                    (settings.avatar_size, settings.avatar_size),
                    method=Image.Resampling.LANCZOS,
                )
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ValidationError(
                message="The file must be a valid image (PNG, JPEG or WEBP).",
                field="avatar",
                context={"error": type(e).__name__},
            )

        if image_format not in ALLOWED_FORMATS:
            raise ValidationError(
                message=f"Image format '{image_format}' is not supported.",
                field="avatar",
                context={"format": image_format},
            )

        buffer = io.BytesIO()
        cropped.save(buffer, format="PNG")
        return buffer.getvalue()

    async def store(self, png: bytes) -> str:
        """
        Write an encoded avatar to disk.

        Returns:
            Public URL path of the stored avatar

        Raises:
            FileStorageError: the file could not be written
        """
        name = f"{uuid.uuid4().hex}.png"
        path = self.avatar_dir / name
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(png)
        except OSError as e:
            logger.error("Failed to store avatar at %s: %s", path, e)
            raise FileStorageError(
                message="Failed to save the avatar. Please try again.",
                context={"os_error": str(e)},
            )
        logger.info("Avatar stored: %s (%d bytes)", name, len(png))
        return f"{AVATAR_URL_PREFIX}{name}"

    async def save_avatar(self, filename: str, content: bytes) -> str:
        """Complete pipeline: validate, process, store. Returns the avatar URL."""
        self.validate_extension(filename)
        self.validate_size(len(content))
        png = self.process_image(content)
        return await self.store(png)

    def resolve(self, filename: str) -> Path:
        """
        Path of a stored avatar for serving.

        Raises:
            NotFoundError: unknown name, or a name outside the avatars directory
        """
        if not _AVATAR_NAME.match(filename):
            raise NotFoundError(resource="avatar", resource_id=filename)
        path = (self.avatar_dir / filename).resolve()
        if path.parent != self.avatar_dir or not path.is_file():
            raise NotFoundError(resource="avatar", resource_id=filename)
        return path

    async def remove_previous(self, avatar_url: Optional[str]) -> None:
        """
        Best-effort delete of a replaced avatar.

        Gravatar URLs and unknown names are ignored.
        """
        if not avatar_url or not avatar_url.startswith(AVATAR_URL_PREFIX):
            return
        name = avatar_url[len(AVATAR_URL_PREFIX):]
        if not _AVATAR_NAME.match(name):
            return
        try:
            os.remove(self.avatar_dir / name)
            logger.info("Removed previous avatar %s", name)
        except FileNotFoundError:
            logger.debug("Previous avatar already gone: %s", name)
        except OSError as e:
            logger.warning("Failed to remove previous avatar %s: %s", name, e)


# ── Singleton Instance ────────────────────────────────────────────────────
avatar_service = AvatarService()
