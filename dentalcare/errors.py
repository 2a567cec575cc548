"""Error types raised by the booking and scheduling services.

Services raise these; the HTTP layer turns them into ``HTTPException``
responses with :func:`to_http_exception`.
"""

from fastapi import HTTPException, status


class DentalCareError(Exception):
    """Base class for every error a caller can act on."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self):
        return self.message


class ValidationError(DentalCareError):
    """Malformed input, reported with the offending field."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_detail(self):
        return {'field': self.field, 'message': self.message}


class NotFoundError(DentalCareError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id=None):
        super().__init__(f'{resource} not found.')
        self.resource = resource
        self.resource_id = resource_id

    def to_detail(self):
        return 'Resource not found.'


class ConflictError(DentalCareError):
    status_code = status.HTTP_409_CONFLICT
    retry_hint = None

    def to_detail(self):
        detail = {'message': self.message}
        if self.retry_hint:
            detail['retry_hint'] = self.retry_hint
        return detail


class SlotUnavailableError(ConflictError):
    retry_hint = 'Fetch availability again and choose another time.'

    def __init__(self, message: str = 'The selected time is no longer available.'):
        super().__init__(message)


class InvalidTransitionError(ConflictError):
    def __init__(self, current_status: str, action: str):
        super().__init__(f'Cannot {action} an appointment that is {current_status}.')
        self.current_status = current_status
        self.action = action


class AuthorizationError(DentalCareError):
    status_code = status.HTTP_403_FORBIDDEN


def to_http_exception(exc: DentalCareError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
