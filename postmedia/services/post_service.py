import logging
import math
import os
from urllib.parse import urlsplit

from sqlalchemy.exc import SQLAlchemyError

from postmedia.db import db
from postmedia.errors import (
    Forbidden,
    NotFound,
    TransactionError,
    UploadError,
    ValidationError,
)
from postmedia.extensions.media_store import MEDIA_URL_MARKER
from postmedia.repositories import post_repository, user_repository
from postmedia.services.media_service import MediaUploader


logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def _serialize_user(user):
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "profile_image_url": user.profile_image_url,
    }


def _serialize_post(post, user_by_id: dict):
    return {
        "id": post.id,
        "content": post.content,
        "user_id": post.user_id,
        "user": _serialize_user(user_by_id.get(post.user_id)),
        "created_at": post.created_at.isoformat(),
        "updated_at": post.updated_at.isoformat(),
        "attachments": [attachment.to_dict() for attachment in post.attachments],
    }


def _serialize_posts(posts):
    users = user_repository.get_by_ids({post.user_id for post in posts})
    user_by_id = {user.id: user for user in users}
    return [_serialize_post(post, user_by_id) for post in posts]


def _clean_content(content):
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Content is required")
    return content.strip()


def resolve_remote_id(attachment):
    """Remote store id for an attachment.

    Rows written before the id was persisted only carry the URL, so the id
    is recovered from the ``/media/<id>.<ext>`` path layout.
    """
    if attachment.remote_id:
        return attachment.remote_id
    if not attachment.url:
        return None

    path = urlsplit(attachment.url).path
    marker_index = path.find(MEDIA_URL_MARKER)
    if marker_index != -1:
        remainder = path[marker_index + len(MEDIA_URL_MARKER):]
    else:
        remainder = path.rsplit("/", 1)[-1]
        logger.warning(
            "Attachment %s URL has no %s marker, guessing remote id from %s",
            attachment.id, MEDIA_URL_MARKER, attachment.url,
        )

    remote_id = os.path.splitext(remainder)[0].strip("/")
    return remote_id or None


def _compensate(uploader: MediaUploader, stored_media, reason: str):
    if not stored_media:
        return
    remote_ids = [media.remote_id for media in stored_media]
    logger.warning("Compensating %d upload(s) after %s", len(remote_ids), reason)
    failed = uploader.delete_many(remote_ids)
    if failed:
        logger.error("Orphaned media left in storage after %s: %s", reason, failed)


def _get_owned_post(user_id, post_id):
    post = post_repository.get_by_id(post_id)
    if not post:
        raise NotFound("Post not found")
    if user_id is None or post.user_id != user_id:
        raise Forbidden("You can only modify your own posts")
    return post


def create_post(user_id, content, files=None, uploader=None):
    if user_id is None:
        raise ValidationError("Content is required and user must be authenticated")
    content = _clean_content(content)

    user = user_repository.get_by_id(user_id)
    if not user:
        raise NotFound("User not found")

    uploader = uploader or MediaUploader.from_app()
    files = list(files or [])

    try:
        stored_media = uploader.upload_many(files)
    except UploadError as e:
        _compensate(uploader, e.completed, "upload failure")
        raise

    try:
        post = post_repository.create_post_with_attachments(
            user_id=user.id,
            content=content,
            stored_media=stored_media,
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Creating post for user %s failed", user.id, exc_info=True)
        _compensate(uploader, stored_media, "post commit failure")
        raise TransactionError("Failed to save post") from e

    logger.info("User %s created post %s with %d attachment(s)", user.id, post.id, len(stored_media))
    return _serialize_post(post, {user.id: user})


def update_post(user_id, post_id, content=None, file=None, uploader=None):
    post = _get_owned_post(user_id, post_id)

    if content is None and file is None:
        raise ValidationError("Content or media file is required")
    if content is not None:
        content = _clean_content(content)

    new_media = None
    old_remote_ids = []
    if file is not None:
        uploader = uploader or MediaUploader.from_app()
        new_media = uploader.upload(file)
        old_remote_ids = [resolve_remote_id(attachment) for attachment in post.attachments]

    try:
        post = post_repository.update_post(post, content=content, stored_media=new_media)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Updating post %s failed", post_id, exc_info=True)
        if new_media is not None:
            _compensate(uploader, [new_media], "post update failure")
        raise TransactionError("Failed to update post") from e

    # old objects go only once the row points at the new one
    if old_remote_ids:
        uploader.delete_many([remote_id for remote_id in old_remote_ids if remote_id])

    return _serialize_post(post, {post.user_id: user_repository.get_by_id(post.user_id)})


def delete_post(user_id, post_id, uploader=None):
    post = _get_owned_post(user_id, post_id)
    remote_ids = [resolve_remote_id(attachment) for attachment in post.attachments]

    try:
        post_repository.delete_post(post)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Deleting post %s failed", post_id, exc_info=True)
        raise TransactionError("Failed to delete post") from e

    logger.info("User %s deleted post %s", user_id, post_id)

    remote_ids = [remote_id for remote_id in remote_ids if remote_id]
    if remote_ids:
        uploader = uploader or MediaUploader.from_app()
        failed = uploader.delete_many(remote_ids)
        if failed:
            logger.warning("Post %s deleted with %d orphaned media object(s)", post_id, len(failed))


def get_post(post_id):
    post = post_repository.get_by_id(post_id)
    if not post:
        raise NotFound("Post not found")
    return _serialize_posts([post])[0]


def get_posts(page: int, limit: int, user_id=None):
    page = max(page or 1, 1)
    limit = min(max(limit or 10, 1), MAX_PAGE_SIZE)

    posts, total = post_repository.paginate(page, limit, user_id=user_id)
    total_pages = math.ceil(total / limit) if total else 0

    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": (page - 1) * limit + len(posts) < total,
        "has_prev": page > 1,
        "posts": _serialize_posts(posts),
    }
