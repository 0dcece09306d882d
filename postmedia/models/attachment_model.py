from datetime import datetime

from postmedia.db import db


class Attachment(db.Model):
    __tablename__ = "attachments"

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(
        db.Integer,
        db.ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    url = db.Column(db.String(512), nullable=False)
    # Null only on legacy rows; see post_service.resolve_remote_id.
    remote_id = db.Column(db.String(255), nullable=True)
    mime_type = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "url": self.url,
            "remote_id": self.remote_id,
            "mime_type": self.mime_type,
        }
