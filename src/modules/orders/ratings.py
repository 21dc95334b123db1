"""Running rating aggregates for vendors and delivery partners.

``apply_rating`` adds one sample with a single ``UPDATE`` statement, so two
submissions for the same vendor can never read the same prior count and
drop an increment.  The average is derived from ``rating_total /
rating_count`` on read.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Tuple, Type

import structlog
from django.db.models import F

from modules.core.exceptions import NotFound
from modules.core.models import RunningRatingMixin

logger = structlog.get_logger(__name__)


class RatingAggregator:
    def apply_rating(
        self, model: Type[RunningRatingMixin], pk, score: int
    ) -> Tuple[Decimal, int]:
        """Add *score* to the running aggregate of ``model(pk)``.

        Returns the refreshed ``(average, count)``.
        """
        rows = model.objects.filter(pk=pk).update(
            rating_total=F("rating_total") + score,
            rating_count=F("rating_count") + 1,
        )
        if rows == 0:
            raise NotFound(f"{model.__name__} {pk} not found.")

        entity = model.objects.only("rating_total", "rating_count").get(pk=pk)
        logger.info(
            "rating.applied",
            entity=model.__name__,
            entity_id=str(pk),
            score=score,
            count=entity.rating_count,
        )
        return entity.rating_average, entity.rating_count
