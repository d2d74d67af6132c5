"""
Errors raised by the blood request lifecycle.

They are DRF exceptions so the API layer renders them without extra
handling; ``CollaboratorFailure`` is the exception that never reaches a
caller: background tasks raise it around email/file operations and log it.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError

__all__ = [
    'CapacityExceeded',
    'CollaboratorFailure',
    'DuplicateResponse',
    'InvalidTransition',
    'NotFound',
    'NotRequestOwner',
    'RateLimited',
    'ValidationError',
]


class DuplicateResponse(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'You have already responded to this blood request'
    default_code = 'duplicate_response'


class CapacityExceeded(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This request already has the maximum number of donors and cannot accept more'
    default_code = 'capacity_exceeded'

    def __init__(self, limit):
        self.limit = limit
        super().__init__(
            f'This request already has the maximum number of donors ({limit}) and cannot accept more'
        )


class InvalidTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This action is not allowed in the current state'
    default_code = 'invalid_transition'

    def __init__(self, detail=None, current_status=None):
        self.current_status = current_status
        super().__init__(detail)


class NotRequestOwner(InvalidTransition):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Not authorized to update this request'
    default_code = 'not_request_owner'


class RateLimited(APIException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = 'rate_limited'

    def __init__(self, limit):
        self.limit = limit
        super().__init__({
            'message': f'Daily limit reached. You can create a maximum of {limit} blood requests per day.',
        })
        # keep the limit numeric in the rendered body
        self.detail['limit'] = limit


class CollaboratorFailure(Exception):
    """An email, push or file-store operation failed"""
