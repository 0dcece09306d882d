import logging

from flask_jwt_extended import create_access_token, create_refresh_token
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from postmedia.db import db
from postmedia.errors import AuthenticationError, NotFound, ValidationError
from postmedia.repositories import user_repository


logger = logging.getLogger(__name__)


def _require_non_empty_string(value):
    return isinstance(value, str) and value.strip()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def register(name, email, password):
    if (
        not _require_non_empty_string(name)
        or not _require_non_empty_string(email)
        or not _require_non_empty_string(password)
    ):
        raise ValidationError("Name, email and password are required")

    email = _normalize_email(email)
    if "@" not in email:
        raise ValidationError("Email is invalid")

    if user_repository.get_by_email(email):
        raise ValidationError("Email already registered")

    try:
        user = user_repository.create_user(
            name=name.strip(),
            email=email,
            password_hash=generate_password_hash(password),
        )
    except IntegrityError as e:
        db.session.rollback()
        raise ValidationError("Email already registered") from e

    logger.info("Registered user %s", user.id)
    return user.to_dict()


def login(email, password):
    if not _require_non_empty_string(email) or not _require_non_empty_string(password):
        raise ValidationError("Email and password are required")

    user = user_repository.get_by_email(_normalize_email(email))
    if not user or not check_password_hash(user.password_hash, password):
        raise AuthenticationError("Invalid email or password")

    identity = str(user.id)
    return {
        "access_token": create_access_token(identity=identity),
        "refresh_token": create_refresh_token(identity=identity),
        "user": user.to_dict(),
    }


def refresh_access_token(identity):
    return {
        "access_token": create_access_token(identity=identity)
    }


def get_profile(user_id):
    user = user_repository.get_by_id(user_id)
    if not user:
        raise NotFound("User not found")
    return user.to_dict()
