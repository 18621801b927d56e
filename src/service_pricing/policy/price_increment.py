"""
Price Increment Policy - Lets a client boost the offer on a pending request.

Each boost adds a fixed percentage of the original price as an extra
increment. The original price is never changed; the boost count is capped.
"""
import logging
import math
from dataclasses import dataclass, replace

from ..engine.config_provider import ConfigProvider
from ..engine.exceptions import IncrementLimitReached, InvalidJobAttributes
from ..engine.rounding import round_currency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncrementState:
    """Boost state of a single service request."""
    request_id: str
    base_price: int
    extra_increment: int = 0
    increment_count: int = 0

    @property
    def estimated_final_price(self) -> int:
        return self.base_price + self.extra_increment


@dataclass(frozen=True)
class IncrementResult:
    state: IncrementState
    increment_amount: int
    max_increment_count: int

    @property
    def can_increment_again(self) -> bool:
        return self.state.increment_count < self.max_increment_count


class PriceIncrementPolicy:
    """Applies client price boosts using the limits in the system config."""

    def __init__(self, config_provider: ConfigProvider):
        self.config_provider = config_provider

    def increment(self, state: IncrementState) -> IncrementResult:
        """Apply one boost, raising IncrementLimitReached when none are left."""
        if not math.isfinite(state.base_price) or state.base_price < 0:
            raise InvalidJobAttributes(f"Base price must be a finite non-negative amount, got {state.base_price}")

        config = self.config_provider.get_system_config()
        max_count = config.max_increment_count

        if state.increment_count >= max_count:
            raise IncrementLimitReached(
                f"Maximum increment limit ({max_count}) reached for request {state.request_id}"
            )

        amount = round_currency(state.base_price * config.price_increment_percentage / 100)
        new_state = replace(
            state,
            extra_increment=state.extra_increment + amount,
            increment_count=state.increment_count + 1,
        )

        logger.info(
            "Price incremented for request %s: +%s (total: %s)",
            state.request_id, amount, new_state.estimated_final_price,
        )
        return IncrementResult(state=new_state, increment_amount=amount, max_increment_count=max_count)
