"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation. Rate tables
and price results are frozen: a breakdown is computed once and any change in
job scope produces a new calculation or an additive adjustment.
"""
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Optional

from .exceptions import InvalidSystemConfiguration


class WorkerTier(str, Enum):
    """Worker standing level, ordered STARTER < PRO < ELITE."""
    STARTER = "STARTER"
    PRO = "PRO"
    ELITE = "ELITE"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, WorkerTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, WorkerTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, WorkerTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, WorkerTier):
            return NotImplemented
        return self.rank >= other.rank


_TIER_RANK = {WorkerTier.STARTER: 0, WorkerTier.PRO: 1, WorkerTier.ELITE: 2}


@dataclass(frozen=True)
class SystemConfig:
    """Global rate table. Immutable for the duration of a calculation."""
    version: str
    base_price_per_sqm: float
    min_hourly_rate: float
    travel_base_fee: float
    tall_grass_multiplier: float
    difficult_access_fee: float
    tax_percentage: float
    cancel_penalty_percentage: float
    slope_multiplier: float = 1.15
    currency: str = "ARS"
    max_service_radius_km: float = 15
    in_progress_cancel_penalty_percentage: float = 0.50
    cancellation_window_hours: float = 24
    price_increment_percentage: int = 10
    max_increment_count: int = 3

    RATE_FIELDS = (
        'base_price_per_sqm', 'min_hourly_rate', 'travel_base_fee',
        'tall_grass_multiplier', 'difficult_access_fee', 'slope_multiplier',
        'max_service_radius_km', 'cancellation_window_hours',
        'price_increment_percentage', 'max_increment_count',
    )
    PERCENTAGE_FIELDS = (
        'tax_percentage', 'cancel_penalty_percentage',
        'in_progress_cancel_penalty_percentage',
    )

    def __post_init__(self):
        errors = []
        for name in self.RATE_FIELDS:
            if getattr(self, name) < 0:
                errors.append(f"{name} must be non-negative")
        for name in self.PERCENTAGE_FIELDS:
            value = getattr(self, name)
            if not 0 <= value < 1:
                errors.append(f"{name} must lie in [0, 1), got {value}")
        if not self.version:
            errors.append("version is required")
        if errors:
            raise InvalidSystemConfiguration("; ".join(errors))

    @classmethod
    def from_dict(cls, data: dict) -> 'SystemConfig':
        """Build a config from a mapping, ignoring keys the table does not know."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TierConfig:
    """Commission and point threshold for a single worker tier."""
    tier: WorkerTier
    name: str
    min_points: int
    commission_fee: float
    benefits: tuple[str, ...] = ()
    priority_score_bonus: int = 0

    def to_dict(self) -> dict:
        return {
            "tier": self.tier.value,
            "name": self.name,
            "min_points": self.min_points,
            "commission_fee": self.commission_fee,
            "benefits": list(self.benefits),
            "priority_score_bonus": self.priority_score_bonus,
        }


@dataclass(frozen=True)
class SurchargeOptions:
    """Conditions flagged on the job that trigger surcharges."""
    has_high_weeds: bool = False
    complicated_access: bool = False
    has_slope: bool = False


@dataclass(frozen=True)
class JobAttributes:
    """Raw job inputs as collected by the request-creation flow."""
    square_meters: float
    ai_estimated_hours: float
    ai_difficulty_multiplier: float = 1.0
    options: SurchargeOptions = field(default_factory=SurchargeOptions)
    worker_tier: WorkerTier = WorkerTier.STARTER


@dataclass(frozen=True)
class TraceStep:
    """A single step in the price calculation trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class CalculationSnapshot:
    """Audit record of the inputs and rules that produced a breakdown."""
    base_rate: float
    difficulty_multiplier: float
    applied_surcharges: tuple[str, ...]
    config_version: str
    worker_tier_applied: WorkerTier
    trace: tuple[TraceStep, ...] = ()

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "base_rate": self.base_rate,
            "difficulty_multiplier": self.difficulty_multiplier,
            "applied_surcharges": list(self.applied_surcharges),
            "config_version": self.config_version,
            "worker_tier_applied": self.worker_tier_applied.value,
        }


@dataclass(frozen=True)
class PriceBreakdown:
    """Complete result of a price calculation."""
    total: int
    worker_net: int
    platform_fee: int
    taxes: int
    calculation_snapshot: CalculationSnapshot
    currency: str = "ARS"

    @property
    def pretax_total(self) -> int:
        return self.worker_net + self.platform_fee

    def to_dict(self) -> dict:
        """Persistable form stored alongside the job record."""
        return {
            "total": self.total,
            "worker_net": self.worker_net,
            "platform_fee": self.platform_fee,
            "taxes": self.taxes,
            "currency": self.currency,
            "calculation_snapshot": self.calculation_snapshot.to_dict(),
        }


@dataclass(frozen=True)
class PriceAdjustment:
    """Additive change on top of an existing breakdown (extra time, boosts)."""
    reason: str
    total: int
    worker_net: int
    platform_fee: int
    taxes: int
    currency: str = "ARS"

    def apply_to(self, breakdown: PriceBreakdown) -> dict:
        """Combined amounts of a breakdown plus this adjustment."""
        return {
            "total": breakdown.total + self.total,
            "worker_net": breakdown.worker_net + self.worker_net,
            "platform_fee": breakdown.platform_fee + self.platform_fee,
            "taxes": breakdown.taxes + self.taxes,
            "currency": breakdown.currency,
        }
