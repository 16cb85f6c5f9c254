# taxdesk_core/exceptions.py
"""
Error taxonomy shared by every store and the HTTP layer.

Validation, Forbidden and NotFound are the stock DRF exceptions so that
DRF maps them to 400/403/404 without extra handlers. The two workflow
specific failures are declared here.
"""

from __future__ import annotations

import functools
import logging

from django.db import InterfaceError, OperationalError
from rest_framework import status
from rest_framework.exceptions import (  # noqa: F401
    APIException,
    NotFound,
    PermissionDenied,
    ValidationError,
)

logger = logging.getLogger(__name__)


class InvalidTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This operation is not allowed in the record's current state."
    default_code = "invalid_transition"


class StorageUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage is temporarily unavailable. Nothing was saved; retry later."
    default_code = "storage_unavailable"


def translate_storage_errors(func):
    """
    Re-raise database connectivity failures as StorageUnavailable.

    The wrapped store runs its writes in one atomic block, so by the time
    the error reaches this wrapper the transaction has been rolled back.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error("Storage failure in %s: %s", func.__name__, exc)
            raise StorageUnavailable() from exc

    return wrapper
