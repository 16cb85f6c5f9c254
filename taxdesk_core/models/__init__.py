# taxdesk_core/models/__init__.py

from .core import AuditLog, TimeStampedModel, UserRole  # noqa: F401
from .dossier import Dossier, DossierSequence  # noqa: F401
from .message import Message  # noqa: F401
from .personnel import Personnel  # noqa: F401
from .resource_order import ResourceOrder  # noqa: F401
