import os
from datetime import timezone

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from minio.error import S3Error
from werkzeug.http import http_date, quote_etag, unquote_etag

from postmedia.extensions.media_store import get_media_store

main_bp = Blueprint("main", __name__)

MEDIA_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchObject"}


@main_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


def _media_error_response(error: Exception):
    if isinstance(error, S3Error) and error.code in MEDIA_NOT_FOUND_CODES:
        return jsonify({"error": "Media not found"}), 404
    return jsonify({"error": "Media unavailable"}), 503


def _as_utc(value):
    if value is None or not hasattr(value, "timestamp"):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _cache_control() -> str:
    max_age = max(int(current_app.config.get("MEDIA_CACHE_MAX_AGE_SECONDS", 0)), 0)
    value = f"public, max-age={max_age}"
    if current_app.config.get("MEDIA_CACHE_IMMUTABLE", True):
        value = f"{value}, immutable"
    return value


def _media_headers(stat):
    headers = {
        "Cache-Control": _cache_control(),
        "Accept-Ranges": "bytes",
        "Content-Type": getattr(stat, "content_type", None) or "application/octet-stream",
    }

    size = getattr(stat, "size", None)
    if size is not None:
        headers["Content-Length"] = str(size)

    etag = str(getattr(stat, "etag", "") or "").strip()
    if etag:
        headers["ETag"] = quote_etag(unquote_etag(etag)[0])

    last_modified = _as_utc(getattr(stat, "last_modified", None))
    if last_modified is not None:
        headers["Last-Modified"] = http_date(last_modified)

    return headers


def _not_modified(stat, headers) -> bool:
    etag = headers.get("ETag")
    if etag and request.if_none_match:
        return request.if_none_match.contains_weak(unquote_etag(etag)[0])

    last_modified = _as_utc(getattr(stat, "last_modified", None))
    since = _as_utc(request.if_modified_since)
    if last_modified is None or since is None:
        return False
    return int(last_modified.timestamp()) <= int(since.timestamp())


@main_bp.route("/media/<path:media_path>", methods=["GET", "HEAD"])
def get_media(media_path: str):
    # Public URLs carry the file extension, stored keys do not.
    remote_id = os.path.splitext(media_path)[0]
    store = get_media_store()

    try:
        stat = store.stat(remote_id)
    except Exception as e:
        return _media_error_response(e)

    headers = _media_headers(stat)
    if _not_modified(stat, headers):
        return Response(status=304, headers=headers)
    if request.method == "HEAD":
        return Response(status=200, headers=headers)

    try:
        store_response = store.open(remote_id)
    except Exception as e:
        return _media_error_response(e)

    chunk_size = max(int(current_app.config.get("MEDIA_STREAM_CHUNK_SIZE", 256 * 1024)), 1024)

    def _stream():
        try:
            yield from store_response.stream(chunk_size)
        finally:
            store_response.close()
            store_response.release_conn()

    return Response(
        stream_with_context(_stream()),
        status=200,
        headers=headers,
        direct_passthrough=True,
    )
