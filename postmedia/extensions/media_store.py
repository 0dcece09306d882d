import io
import logging
import os
import time
import uuid
from dataclasses import dataclass
from threading import Lock

import urllib3
from flask import current_app
from minio import Minio
from werkzeug.utils import secure_filename

from postmedia.errors import UploadError


logger = logging.getLogger(__name__)

MEDIA_URL_MARKER = "/media/"

_EXTENSION_BY_MIME_TYPE = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
    "video/webm": "webm",
}


def extension_for_mimetype(mime_type: str) -> str:
    return _EXTENSION_BY_MIME_TYPE.get(mime_type, mime_type.split("/")[-1])


@dataclass(frozen=True)
class StoredMedia:
    remote_id: str
    url: str
    mime_type: str
    size: int


class MediaStore:
    """Remote object store holding post media.

    Objects are keyed by an opaque remote id (``folder/unique-name``, no
    extension). Public URLs point at the app's ``/media/`` route and carry
    the extension for clients; the route strips it again.
    """

    def __init__(self, client, bucket: str, public_base_url: str):
        self.client = client
        self.bucket = bucket
        self.public_base_url = (public_base_url or "").rstrip("/")
        self._bucket_ready = False
        self._bucket_lock = Lock()

    @classmethod
    def from_config(cls, config):
        timeout = urllib3.Timeout(
            connect=config["MINIO_CONNECT_TIMEOUT"],
            read=config["MINIO_READ_TIMEOUT"],
        )
        http_client = urllib3.PoolManager(
            timeout=timeout,
            retries=False,
            maxsize=config.get("MINIO_HTTP_POOL_MAXSIZE", 32),
        )

        client = Minio(
            config["MINIO_ENDPOINT"],
            access_key=config["MINIO_ACCESS_KEY"],
            secret_key=config["MINIO_SECRET_KEY"],
            secure=config["MINIO_SECURE"],
            http_client=http_client,
        )
        return cls(client, config["MINIO_BUCKET"], config["MEDIA_PUBLIC_BASE_URL"])

    def _ensure_bucket(self):
        if self._bucket_ready:
            return
        with self._bucket_lock:
            if self._bucket_ready:
                return
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
            self._bucket_ready = True

    @staticmethod
    def generate_remote_id(folder: str, filename: str) -> str:
        stem = secure_filename(os.path.splitext(filename or "")[0]) or "file"
        millis = int(time.time() * 1000)
        return f"{folder}/{millis}_{uuid.uuid4().hex[:9]}_{stem}"

    def build_url(self, remote_id: str, mime_type: str) -> str:
        path = f"{remote_id}.{extension_for_mimetype(mime_type)}"
        return f"{self.public_base_url}{MEDIA_URL_MARKER}{path}"

    def upload(self, data: bytes, content_type: str, name: str, folder: str, remote_id=None) -> StoredMedia:
        remote_id = remote_id or self.generate_remote_id(folder, name)
        try:
            self._ensure_bucket()
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=remote_id,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except Exception as e:
            raise UploadError(f"Failed to upload {name} to media storage") from e

        logger.debug("Stored %s (%d bytes) as %s", name, len(data), remote_id)
        return StoredMedia(
            remote_id=remote_id,
            url=self.build_url(remote_id, content_type),
            mime_type=content_type,
            size=len(data),
        )

    def delete(self, remote_id: str):
        self.client.remove_object(bucket_name=self.bucket, object_name=remote_id)

    def stat(self, remote_id: str):
        return self.client.stat_object(bucket_name=self.bucket, object_name=remote_id)

    def open(self, remote_id: str):
        return self.client.get_object(bucket_name=self.bucket, object_name=remote_id)


def get_media_store() -> MediaStore:
    return current_app.extensions["media_store"]
