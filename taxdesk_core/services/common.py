# taxdesk_core/services/common.py

from __future__ import annotations

import functools
import logging

from taxdesk_core.exceptions import InvalidTransition, NotFound, PermissionDenied, ValidationError


def log_refusals(func):
    """
    Log refused store operations at WARNING with the acting ids only,
    then let the error propagate unchanged.
    """
    logger = logging.getLogger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (PermissionDenied, NotFound, InvalidTransition, ValidationError) as exc:
            actor = kwargs.get("actor")
            logger.warning(
                "%s refused (%s) user=%s role=%s",
                func.__name__,
                type(exc).__name__,
                getattr(actor, "user_id", None),
                getattr(actor, "role", None),
            )
            raise

    return wrapper
