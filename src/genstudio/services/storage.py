"""Local-disk storage for uploaded originals and simulated results.

Files live in a single uploads directory that is also served by the static
route; the database only stores their paths.
"""

from pathlib import Path
from uuid import uuid4

import aiofiles
import aiofiles.os
import structlog

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 1024 * 1024

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
}


class UploadStorage:
    """Stores uploads and result artifacts under one directory."""

    def __init__(self, upload_dir: Path | str, url_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_directory(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    async def save_upload(self, content: bytes, content_type: str | None) -> Path:
        """Write an uploaded image to disk under a fresh unique name.

        Args:
            content: Raw image bytes (already validated)
            content_type: Declared MIME type, used to pick the extension

        Returns:
            Path of the stored file
        """
        self.ensure_directory()
        extension = _EXTENSIONS.get((content_type or "").lower(), ".bin")
        destination = self.upload_dir / f"upload_{uuid4().hex}{extension}"

        async with aiofiles.open(destination, "wb") as out_file:
            await out_file.write(content)

        logger.debug("storage.upload_saved", path=str(destination), size=len(content))
        return destination

    async def duplicate(self, source: Path | str, job_id: str) -> Path:
        """Copy an original upload as the stand-in result for a job.

        Args:
            source: Path of the original upload
            job_id: Job the result belongs to (prefix of the file name)

        Returns:
            Path of the result file

        Raises:
            OSError: If the source cannot be read or the copy cannot be written
        """
        source = Path(source)
        # Unique per call, so a repeated run never overwrites an earlier result
        suffix = source.suffix or ".jpg"
        destination = self.upload_dir / f"result_{job_id}_{uuid4().hex[:8]}{suffix}"

        async with aiofiles.open(source, "rb") as in_file:
            async with aiofiles.open(destination, "wb") as out_file:
                while True:
                    chunk = await in_file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await out_file.write(chunk)

        return destination

    async def discard(self, path: Path | str) -> None:
        """Remove a stored file if it still exists."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass

    def url_for(self, path: str | None) -> str | None:
        """Public URL of a stored file under the static upload prefix."""
        if not path:
            return None
        return f"{self.url_prefix}/{Path(path).name}"
