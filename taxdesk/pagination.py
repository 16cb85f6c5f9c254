from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response


class DefaultPagination(LimitOffsetPagination):
    """
    limit/offset paging with an `{items, total}` envelope.

    `total` is counted at query time and may be stale by the time the
    client requests the next page.
    """

    @property
    def max_limit(self) -> int:
        return settings.TAXDESK["DOSSIER_MAX_PAGE_SIZE"]

    def get_paginated_response(self, data):
        return Response({"items": data, "total": self.count})

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["items", "total"],
            "properties": {
                "items": schema,
                "total": {"type": "integer", "example": 42},
            },
        }
