from postmedia.models.user_model import User
from postmedia.models.post_model import Post
from postmedia.models.attachment_model import Attachment

__all__ = ["User", "Post", "Attachment"]
