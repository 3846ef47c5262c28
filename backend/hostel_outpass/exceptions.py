"""Error taxonomy for the outpass workflow.

Every error carries the HTTP status the API layer answers with and a
``kind`` string the UI uses to choose an actionable message.
"""


class OutpassError(Exception):
    """Base class for workflow errors."""

    status_code = 400
    kind = 'error'

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            'error': True,
            'message': self.message,
            'error_type': self.kind,
            'status_code': self.status_code
        }


class ValidationError(OutpassError):
    """Missing or malformed input."""

    status_code = 400
    kind = 'validation_error'


class AuthenticationError(OutpassError):
    """Bad or missing credentials."""

    status_code = 401
    kind = 'authentication_error'


class AuthorizationError(OutpassError):
    """Caller may not act on the resource."""

    status_code = 403
    kind = 'authorization_error'


class NotFoundError(OutpassError):
    """Referenced outpass, student or user does not exist."""

    status_code = 404
    kind = 'not_found'


class ConflictError(OutpassError):
    """Resource would violate a uniqueness rule."""

    status_code = 409
    kind = 'conflict'


class InvalidStateError(OutpassError):
    """Action not allowed for the outpass's current status."""

    status_code = 409
    kind = 'invalid_state'

    def __init__(self, message: str, current_status=None):
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.current_status is not None:
            result['current_status'] = getattr(self.current_status, 'value', self.current_status)
        return result


class DispatchError(OutpassError):
    """A notification channel failed. Recovered locally by the workflow."""

    status_code = 502
    kind = 'dispatch_error'

    def __init__(self, message: str, channel: str = None):
        super().__init__(message)
        self.channel = channel
