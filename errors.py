class TrackerError(Exception):
    """Base for every failure that is reported back to the caller."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"ok": False, "message": self.message}


class InvalidInput(TrackerError):
    status_code = 400
    default_message = "Invalid input"


class Conflict(TrackerError):
    status_code = 400
    default_message = "Email already registered"


class Unauthorized(TrackerError):
    status_code = 401
    default_message = "Invalid email or password"


class NotFound(TrackerError):
    status_code = 404
    default_message = "Not found"


class StoreFailure(TrackerError):
    status_code = 500
