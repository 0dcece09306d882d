import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass

from flask import current_app

from postmedia.errors import UnsupportedMediaType, UploadError, ValidationError
from postmedia.extensions.media_store import get_media_store
from postmedia.services.image_service import compress_image


logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": {"jpg", "jpeg"},
    "image/png": {"png"},
    "image/gif": {"gif"},
    "image/webp": {"webp"},
}

ALLOWED_VIDEO_TYPES = {
    "video/mp4": {"mp4"},
    "video/quicktime": {"mov"},
    "video/x-msvideo": {"avi"},
    "video/webm": {"webm"},
}

ALLOWED_MEDIA_TYPES = {**ALLOWED_IMAGE_TYPES, **ALLOWED_VIDEO_TYPES}

IMAGE_FOLDER = "posts/images"
VIDEO_FOLDER = "posts/videos"


@dataclass(frozen=True)
class MediaFile:
    data: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lstrip(".").lower()

    @property
    def is_image(self) -> bool:
        return self.mime_type in ALLOWED_IMAGE_TYPES

    @classmethod
    def from_upload(cls, file_storage):
        stream = getattr(file_storage, "stream", file_storage)
        try:
            stream.seek(0)
        except Exception:
            pass
        mime_type = (getattr(file_storage, "mimetype", None) or "").lower()
        return cls(
            data=stream.read(),
            mime_type=mime_type,
            filename=getattr(file_storage, "filename", "") or "",
        )


class MediaUploader:
    """Pushes post media to the remote store.

    Validation happens up front for the whole request so that a rejected
    file never costs a network round trip. ``upload_many`` is
    all-or-nothing: on failure it raises ``UploadError`` listing the
    uploads that did succeed, and the caller owns their cleanup.
    """

    def __init__(
        self,
        store,
        max_files=10,
        max_file_bytes=50 * 1024 * 1024,
        batch_file_threshold=6,
        batch_bytes_threshold=20 * 1024 * 1024,
        batch_size=3,
        batch_pause_seconds=0.5,
        compress_images=True,
    ):
        self.store = store
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes
        self.batch_file_threshold = batch_file_threshold
        self.batch_bytes_threshold = batch_bytes_threshold
        self.batch_size = max(batch_size, 1)
        self.batch_pause_seconds = batch_pause_seconds
        self.compress_images = compress_images

    @classmethod
    def from_app(cls):
        config = current_app.config
        return cls(
            get_media_store(),
            max_files=config["MAX_MEDIA_FILES"],
            max_file_bytes=config["MAX_MEDIA_FILE_BYTES"],
            batch_file_threshold=config["MEDIA_BATCH_FILE_THRESHOLD"],
            batch_bytes_threshold=config["MEDIA_BATCH_BYTES_THRESHOLD"],
            batch_size=config["MEDIA_BATCH_SIZE"],
            batch_pause_seconds=config["MEDIA_BATCH_PAUSE_SECONDS"],
            compress_images=config["MEDIA_COMPRESS_IMAGES"],
        )

    def validate_file(self, file: MediaFile):
        if not file.filename:
            raise ValidationError("Media file is required")
        if not file.data:
            raise ValidationError(f"Media file {file.filename} is empty")
        if file.size > self.max_file_bytes:
            raise ValidationError(f"Media file {file.filename} is too large")

        allowed_extensions = ALLOWED_MEDIA_TYPES.get(file.mime_type)
        if not allowed_extensions or file.extension not in allowed_extensions:
            raise UnsupportedMediaType(
                f"Unsupported media type: {file.mime_type or 'unknown'} ({file.filename})"
            )

    def validate(self, files):
        if len(files) > self.max_files:
            raise ValidationError(f"Maximum {self.max_files} media files allowed")
        for file in files:
            self.validate_file(file)

    def _prepare(self, file: MediaFile):
        if not (self.compress_images and file.is_image):
            return file.data, file.mime_type
        processed = compress_image(file.data, file.mime_type, file.extension)
        return processed.data, processed.mime_type

    def upload(self, file: MediaFile):
        self.validate_file(file)
        return self._upload(file)

    def _upload(self, file: MediaFile):
        data, mime_type = self._prepare(file)
        folder = IMAGE_FOLDER if file.is_image else VIDEO_FOLDER
        try:
            return self.store.upload(data, mime_type, file.filename, folder)
        except UploadError:
            raise
        except Exception as e:
            raise UploadError(f"Failed to upload {file.filename} to media storage") from e

    def _batches(self, files):
        total_bytes = sum(file.size for file in files)
        if len(files) <= self.batch_file_threshold and total_bytes <= self.batch_bytes_threshold:
            return [files]
        return [
            files[start:start + self.batch_size]
            for start in range(0, len(files), self.batch_size)
        ]

    def upload_many(self, files):
        files = list(files or [])
        self.validate(files)
        if not files:
            return []

        batches = self._batches(files)
        completed = []

        for index, batch in enumerate(batches):
            if index > 0 and self.batch_pause_seconds > 0:
                time.sleep(self.batch_pause_seconds)

            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                futures = [executor.submit(self._upload, file) for file in batch]
                wait(futures)

            failure = None
            for future in futures:
                error = future.exception()
                if error is None:
                    completed.append(future.result())
                elif failure is None:
                    failure = error

            if failure is not None:
                logger.warning(
                    "Media upload failed in batch %d/%d, %d file(s) already stored",
                    index + 1, len(batches), len(completed),
                )
                message = str(failure) if isinstance(failure, UploadError) else None
                raise UploadError(message, completed=completed) from failure

        return completed

    def delete(self, remote_id) -> bool:
        if not remote_id:
            return False
        try:
            self.store.delete(remote_id)
        except Exception:
            logger.error("Failed to delete %s from media storage", remote_id, exc_info=True)
            return False
        logger.info("Deleted %s from media storage", remote_id)
        return True

    def delete_many(self, remote_ids):
        return [remote_id for remote_id in remote_ids if not self.delete(remote_id)]
