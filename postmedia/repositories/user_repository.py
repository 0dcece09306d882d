from postmedia.db import db
from postmedia.models.user_model import User


def get_by_id(user_id):
    return db.session.get(User, user_id)


def get_by_email(email: str):
    return User.query.filter_by(email=email).first()


def get_by_ids(user_ids):
    if not user_ids:
        return []
    return User.query.filter(User.id.in_(user_ids)).all()


def create_user(name, email, password_hash):
    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
    )
    db.session.add(user)
    db.session.commit()
    return user
