class PostMediaError(Exception):
    status_code = 500
    retryable = False
    default_message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    def to_dict(self):
        return {"error": str(self), "retryable": self.retryable}


class ValidationError(PostMediaError, ValueError):
    status_code = 400
    default_message = "Invalid request"


class UnsupportedMediaType(ValidationError):
    status_code = 415
    default_message = "File type not supported. Only images and videos are allowed."


class AuthenticationError(PostMediaError):
    status_code = 401
    default_message = "Invalid email or password"


class Forbidden(PostMediaError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(PostMediaError):
    status_code = 404
    default_message = "Not found"


class UploadError(PostMediaError):
    status_code = 503
    retryable = True
    default_message = "Media storage is unavailable"

    def __init__(self, message=None, completed=None):
        super().__init__(message)
        # uploads from the same call that did reach the store
        self.completed = list(completed or [])


class TransactionError(PostMediaError):
    status_code = 500
    retryable = True
    default_message = "Database transaction failed"
