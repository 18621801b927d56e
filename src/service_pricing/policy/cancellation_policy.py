"""
Cancellation Policy - Decides the penalty charged when a client cancels.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..engine.exceptions import InvalidJobAttributes
from ..engine.pricing_engine import PricingEngine
from ..engine.rounding import round_currency

logger = logging.getLogger(__name__)

IN_PROGRESS = "IN_PROGRESS"
ACTIVE_STATUSES = ("ASSIGNED", "OFFERING", "ACCEPTED")
EARLY_STATUSES = ("CREATED", "OPEN", "PENDING", "ANALYZING")


@dataclass(frozen=True)
class CancellationOutcome:
    """Money split of a cancellation. The worker never receives a share."""
    penalty: int
    refund: int
    reason: str
    worker_share: int = 0

    @property
    def platform_share(self) -> int:
        return self.penalty

    @property
    def free(self) -> bool:
        return self.penalty == 0


class CancellationPolicy:
    """
    Status- and schedule-aware cancellation penalties.

    Decision order:
    1. IN_PROGRESS → in-progress penalty
    2. Scheduled beyond the cancellation window → free
    3. Scheduled within the window → late penalty
    4. Active status without schedule → late penalty
    5. Early status → free
    """

    def __init__(self, engine: PricingEngine):
        self.engine = engine

    def evaluate(
        self,
        total_price: int,
        status: str,
        scheduled_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> CancellationOutcome:
        """Compute the penalty and refund for cancelling a request."""
        if not math.isfinite(total_price) or total_price < 0:
            raise InvalidJobAttributes(f"Total price must be a finite non-negative amount, got {total_price}")

        config = self.engine.config_provider.get_system_config()
        status = status.upper()

        if status == IN_PROGRESS:
            penalty = round_currency(total_price * config.in_progress_cancel_penalty_percentage)
            logger.info("Cancellation during IN_PROGRESS: %s penalty", penalty)
            return self._outcome(total_price, penalty, "In-progress cancellation penalty")

        if scheduled_at is not None:
            hours_until = self._hours_until(scheduled_at, now)
            if hours_until > config.cancellation_window_hours:
                logger.info(
                    "Free cancellation: %.1fh notice (> %sh required)",
                    hours_until, config.cancellation_window_hours,
                )
                return self._outcome(total_price, 0, "Free cancellation with notice")

            logger.info(
                "Late cancellation: %.1fh notice (< %sh required)",
                hours_until, config.cancellation_window_hours,
            )
            penalty = self.engine.calculate_cancellation_fee(total_price)
            return self._outcome(total_price, penalty, "Late cancellation penalty")

        if status in ACTIVE_STATUSES:
            penalty = self.engine.calculate_cancellation_fee(total_price)
            logger.info("Cancellation in %s state: %s penalty", status, penalty)
            return self._outcome(total_price, penalty, "Active service cancellation penalty")

        logger.info("Free cancellation in early stage: %s", status)
        return self._outcome(total_price, 0, "Free cancellation in early stage")

    def can_cancel_free(
        self,
        status: str,
        scheduled_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Whether cancelling right now costs the client nothing."""
        status = status.upper()
        if status == IN_PROGRESS:
            return False

        if scheduled_at is not None:
            config = self.engine.config_provider.get_system_config()
            return self._hours_until(scheduled_at, now) > config.cancellation_window_hours

        return status in EARLY_STATUSES

    @staticmethod
    def _hours_until(scheduled_at: datetime, now: Optional[datetime]) -> float:
        if now is None:
            now = datetime.now(timezone.utc) if scheduled_at.tzinfo else datetime.now()
        elif (scheduled_at.tzinfo is None) != (now.tzinfo is None):
            raise InvalidJobAttributes(
                "scheduled_at and now must both be timezone-aware or both naive"
            )
        return (scheduled_at - now).total_seconds() / 3600

    @staticmethod
    def _outcome(total_price: int, penalty: int, reason: str) -> CancellationOutcome:
        return CancellationOutcome(
            penalty=penalty,
            refund=round_currency(total_price) - penalty,
            reason=reason,
        )
