"""Error kinds raised across the tutor backend.

Each error carries a stable machine-readable ``code`` and the HTTP status
it maps to, so the route layer can turn any of them into a response
without inspecting the message text.
"""


class TutorError(Exception):
    """Base class for every error the application raises on purpose"""

    code = "tutor_error"
    status_code = 500

    def __init__(self, message: str, code: str = None, status_code: int = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class ValidationError(TutorError):
    """Malformed or incomplete input"""

    code = "validation_error"
    status_code = 400


class NotFoundError(TutorError):
    """A referenced conversation, message or file does not exist"""

    code = "not_found"
    status_code = 404


class GenerationError(TutorError):
    """The external completion call failed"""

    code = "generation_error"
    status_code = 502


class UploadError(TutorError):
    """Rejected upload (bad type, too large, missing) or failed write"""

    code = "upload_error"
    status_code = 400

    @classmethod
    def io_failure(cls, message: str) -> "UploadError":
        return cls(message, code="upload_io_error", status_code=500)
