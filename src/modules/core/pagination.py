from collections import OrderedDict

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination with a ``limit`` query parameter.

    Response shape::

        {"success": true, "results": [...],
         "pagination": {"current": 1, "pages": 3, "total": 55}}
    """

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response(
            OrderedDict(
                [
                    ("success", True),
                    ("results", data),
                    (
                        "pagination",
                        {
                            "current": self.page.number,
                            "pages": self.page.paginator.num_pages,
                            "total": self.page.paginator.count,
                        },
                    ),
                ]
            )
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "results": schema,
                "pagination": {
                    "type": "object",
                    "properties": {
                        "current": {"type": "integer"},
                        "pages": {"type": "integer"},
                        "total": {"type": "integer"},
                    },
                },
            },
        }
