import io
import os
import tempfile
from datetime import datetime, timezone
from threading import Lock

from PIL import Image

from postmedia.errors import UploadError
from postmedia.extensions.media_store import StoredMedia, extension_for_mimetype


class FakeMediaStore:
    """In-memory stand-in for MediaStore that records every call."""

    def __init__(self, fail_uploads_for=(), fail_deletes=False):
        self._lock = Lock()
        self.reset(fail_uploads_for, fail_deletes)

    def reset(self, fail_uploads_for=(), fail_deletes=False):
        self.objects = {}
        self.upload_calls = []
        self.delete_calls = []
        self.fail_uploads_for = set(fail_uploads_for)
        self.fail_deletes = fail_deletes
        self.on_delete = None
        self._counter = 0

    def upload(self, data, content_type, name, folder, remote_id=None):
        with self._lock:
            self.upload_calls.append(name)
            if name in self.fail_uploads_for:
                raise UploadError(f"Failed to upload {name} to media storage")
            self._counter += 1
            stem = os.path.splitext(name)[0]
            remote_id = remote_id or f"{folder}/{self._counter}_{stem}"
            self.objects[remote_id] = (data, content_type)

        return StoredMedia(
            remote_id=remote_id,
            url=f"http://media.test/media/{remote_id}.{extension_for_mimetype(content_type)}",
            mime_type=content_type,
            size=len(data),
        )

    def delete(self, remote_id):
        with self._lock:
            self.delete_calls.append(remote_id)
        if self.on_delete is not None:
            self.on_delete(remote_id)
        if self.fail_deletes:
            raise RuntimeError("storage down")
        with self._lock:
            self.objects.pop(remote_id, None)


class FakeStat:
    def __init__(self, content_type, size, etag, last_modified):
        self.content_type = content_type
        self.size = size
        self.etag = etag
        self.last_modified = last_modified


class FakeMinioObject:
    def __init__(self, data):
        self.data = data
        self.closed = False
        self.released = False

    def stream(self, chunk_size):
        for start in range(0, len(self.data), chunk_size):
            yield self.data[start:start + chunk_size]

    def close(self):
        self.closed = True

    def release_conn(self):
        self.released = True


class FakeMinio:
    def __init__(self):
        self.buckets = set()
        self.objects = {}
        self.opened = []

    def bucket_exists(self, bucket_name):
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name):
        self.buckets.add(bucket_name)

    def put_object(self, bucket_name, object_name, data, length, content_type):
        self.objects[(bucket_name, object_name)] = (data.read(length), content_type)

    def remove_object(self, bucket_name, object_name):
        self.objects.pop((bucket_name, object_name), None)

    def stat_object(self, bucket_name, object_name):
        data, content_type = self.objects[(bucket_name, object_name)]
        return FakeStat(
            content_type=content_type,
            size=len(data),
            etag=f"etag-{len(data)}",
            last_modified=datetime(2026, 2, 25, 18, 0, 0, tzinfo=timezone.utc),
        )

    def get_object(self, bucket_name, object_name):
        data, _ = self.objects[(bucket_name, object_name)]
        response = FakeMinioObject(data)
        self.opened.append(response)
        return response


def image_bytes(size=(64, 64), fmt="PNG", color=(200, 30, 30)):
    buffer = io.BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def temp_database_uri():
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(db_fd)
    return db_path, f"sqlite:///{db_path}"


def build_config(database_uri, **overrides):
    config = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": database_uri,
        "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
        "MEDIA_PUBLIC_BASE_URL": "http://media.test",
        "MEDIA_BATCH_PAUSE_SECONDS": 0,
        "LOG_LEVEL": "WARNING",
    }
    config.update(overrides)
    return config
