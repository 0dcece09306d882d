from datetime import datetime

from sqlalchemy.orm import joinedload

from postmedia.db import db
from postmedia.models.post_model import Post
from postmedia.repositories.attachment_repository import build_attachment


def get_by_id(post_id):
    return (
        Post.query
        .options(joinedload(Post.attachments))
        .filter(Post.id == post_id)
        .first()
    )


def create_post_with_attachments(user_id, content, stored_media):
    post = Post(user_id=user_id, content=content)
    post.attachments = [build_attachment(media) for media in stored_media]
    db.session.add(post)
    db.session.commit()
    return post


def update_post(post, content=None, stored_media=None):
    if content is not None:
        post.content = content
    if stored_media is not None:
        post.attachments = [build_attachment(stored_media)]
    post.updated_at = datetime.utcnow()
    db.session.commit()
    return post


def delete_post(post):
    db.session.delete(post)
    db.session.commit()


def paginate(page: int, limit: int, user_id=None):
    query = Post.query
    if user_id is not None:
        query = query.filter(Post.user_id == user_id)

    total = query.count()
    posts = (
        query
        .options(joinedload(Post.attachments))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return posts, total
