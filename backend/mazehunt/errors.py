"""Error taxonomy shared by the services and the HTTP layer."""


class ServiceError(Exception):
    """Base exception for failures a caller should see as a JSON error."""

    status_code = 500
    error = 'Internal server error'

    def __init__(self, error=None, message=None):
        super().__init__(error or self.error)
        if error:
            self.error = error
        self.message = message

    def to_dict(self, include_message=True):
        payload = {'error': self.error}
        if include_message and self.message:
            payload['message'] = self.message
        return payload


class ValidationError(ServiceError):
    status_code = 400
    error = 'Validation failed'


class NotFoundError(ServiceError):
    status_code = 404
    error = 'Not found'


class ForbiddenError(ServiceError):
    status_code = 403
    error = 'Forbidden'


class RateLimitedError(ServiceError):
    status_code = 429
    error = 'Too many requests'


class InternalError(ServiceError):
    status_code = 500
    error = 'Internal server error'
