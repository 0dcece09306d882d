from postmedia.models.attachment_model import Attachment


def build_attachment(stored_media):
    return Attachment(
        url=stored_media.url,
        remote_id=stored_media.remote_id,
        mime_type=stored_media.mime_type,
    )
