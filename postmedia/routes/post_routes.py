from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from postmedia.errors import PostMediaError
from postmedia.services import post_service
from postmedia.services.media_service import MediaFile

post_bp = Blueprint("posts", __name__)


def current_user_id():
    try:
        return int(get_jwt_identity())
    except (TypeError, ValueError):
        return None


def _error_response(error: PostMediaError):
    return jsonify(error.to_dict()), error.status_code


def _read_post_form():
    """Returns ``(content, files)`` from a multipart or JSON request body."""
    content_type = (request.content_type or "").lower()

    if "multipart/form-data" in content_type:
        content = request.form.get("content")
        if content is None:
            content = request.form.get("text")
        uploads = (
            request.files.getlist("files")
            or request.files.getlist("media")
            or request.files.getlist("media[]")
        )
        single = request.files.get("file")
        if single:
            uploads.append(single)
        # browsers submit untouched file inputs as nameless empty parts
        uploads = [upload for upload in uploads if upload and upload.filename]
        return content, [MediaFile.from_upload(upload) for upload in uploads]

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, None
    return data.get("content"), []


@post_bp.route("/posts", methods=["POST"])
@jwt_required()
def create_post():
    content, files = _read_post_form()
    if files is None:
        return jsonify({"error": "Invalid JSON body"}), 400

    try:
        post = post_service.create_post(current_user_id(), content, files)
        return jsonify({
            "message": "Post created successfully",
            "post": post,
        }), 201
    except PostMediaError as e:
        return _error_response(e)


@post_bp.route("/posts", methods=["GET"])
def list_posts():
    page = request.args.get("page", default=1, type=int)
    limit = request.args.get("limit", default=10, type=int)
    user_id = request.args.get("user_id", default=None, type=int)

    data = post_service.get_posts(page, limit, user_id=user_id)
    return jsonify(data), 200


@post_bp.route("/posts/<int:post_id>", methods=["GET"])
def get_post(post_id):
    try:
        return jsonify({"post": post_service.get_post(post_id)}), 200
    except PostMediaError as e:
        return _error_response(e)


@post_bp.route("/posts/<int:post_id>", methods=["PUT", "PATCH"])
@jwt_required()
def update_post(post_id):
    content, files = _read_post_form()
    if files is None:
        return jsonify({"error": "Invalid JSON body"}), 400
    if len(files) > 1:
        return jsonify({"error": "Only one media file can replace a post's media"}), 400

    try:
        post = post_service.update_post(
            current_user_id(),
            post_id,
            content=content,
            file=files[0] if files else None,
        )
        return jsonify({"message": "Post updated successfully", "post": post}), 200
    except PostMediaError as e:
        return _error_response(e)


@post_bp.route("/posts/<int:post_id>", methods=["DELETE"])
@jwt_required()
def delete_post(post_id):
    try:
        post_service.delete_post(current_user_id(), post_id)
        return jsonify({"message": "Post deleted successfully"}), 200
    except PostMediaError as e:
        return _error_response(e)
