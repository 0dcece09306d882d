from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from postmedia.errors import PostMediaError
from postmedia.routes.post_routes import current_user_id
from postmedia.services import auth_service


auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON body"}), 400

    try:
        user = auth_service.register(
            data.get("name"),
            data.get("email"),
            data.get("password"),
        )
        return jsonify({"message": "User created successfully", "user": user}), 201
    except PostMediaError as e:
        return jsonify(e.to_dict()), e.status_code


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON body"}), 400

    try:
        tokens = auth_service.login(
            data.get("email"),
            data.get("password"),
        )
        return jsonify(tokens), 200
    except PostMediaError as e:
        return jsonify(e.to_dict()), e.status_code


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    return jsonify(auth_service.refresh_access_token(get_jwt_identity())), 200


@auth_bp.route("/profile", methods=["GET"])
@jwt_required()
def profile():
    try:
        return jsonify({"user": auth_service.get_profile(current_user_id())}), 200
    except PostMediaError as e:
        return jsonify(e.to_dict()), e.status_code
