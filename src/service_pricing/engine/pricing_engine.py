"""
Pricing Engine - Converts job attributes into a price breakdown.

The worker's pay is computed first (area pay, hourly floor, surcharges,
travel) and then inflated so that the platform's tier commission is a
fraction of what the client pays, not of what the worker receives. Tax is
levied on the platform commission only.

Rounding to whole currency units happens at exactly three points:
worker net, pre-tax total and taxes. Moving a rounding point changes results
by a unit and breaks reconciliation against stored breakdowns.
"""
import logging
import math
from typing import Optional

from .config_provider import ConfigProvider, StaticConfigProvider
from .exceptions import InvalidJobAttributes, InvalidTierConfiguration
from .models import (
    CalculationSnapshot,
    JobAttributes,
    PriceAdjustment,
    PriceBreakdown,
    SurchargeOptions,
    TierConfig,
    TraceStep,
    WorkerTier,
)
from .rounding import round_currency

logger = logging.getLogger(__name__)

HOURLY_FLOOR_LABEL = "Ajuste por Mínimo Horario"

MIN_DIFFICULTY_MULTIPLIER = 1.0
MAX_DIFFICULTY_MULTIPLIER = 2.0


def _percent_label(multiplier: float) -> str:
    return f"+{round_currency((multiplier - 1) * 100)}%"


def _amount_label(amount: float) -> str:
    if float(amount).is_integer():
        return f"+${int(amount)}"
    return f"+${amount:.2f}"


class PricingEngine:
    """
    Core pricing engine.

    Calculation order:
    1. Area pay = m² × base rate × difficulty multiplier
    2. Hourly floor replaces area pay when higher
    3. Surcharges: high weeds (×), complicated access (+), slope (×)
    4. Travel fee
    5. Worker net (rounded)
    6. Commission inversion: pre-tax total = worker net / (1 − commission)
    7. Platform fee = pre-tax total − worker net
    8. Taxes on platform fee (rounded)
    9. Final total = pre-tax total + taxes
    """

    def __init__(self, config_provider: Optional[ConfigProvider] = None):
        self.config_provider = config_provider or StaticConfigProvider()

    def calculate_service_price(
        self,
        square_meters: float,
        ai_estimated_hours: float,
        ai_difficulty_multiplier: float,
        options: Optional[SurchargeOptions] = None,
        worker_tier: WorkerTier = WorkerTier.STARTER,
    ) -> PriceBreakdown:
        """
        Calculate the price of a job for a worker of the given tier.

        Args:
            square_meters: Job area, must be positive
            ai_estimated_hours: Estimated duration, must be positive
            ai_difficulty_multiplier: External difficulty estimate in [1.0, 2.0]
            options: Surcharge flags; no surcharges when omitted
            worker_tier: Tier of the assigned worker, STARTER when unknown

        Returns:
            PriceBreakdown with the calculation snapshot attached
        """
        options = options or SurchargeOptions()
        worker_tier = WorkerTier(worker_tier)
        self._validate_job(square_meters, ai_estimated_hours, ai_difficulty_multiplier)

        config = self.config_provider.get_system_config()
        tier_config = self.config_provider.get_tier_config(worker_tier)
        commission = self._commission_for(tier_config)

        surcharges = []
        trace = []

        # 1. Area pay, difficulty scales the whole base
        base_pay = square_meters * config.base_price_per_sqm * ai_difficulty_multiplier
        trace.append(TraceStep(
            "Area Pay",
            f"{square_meters} m² × {config.base_price_per_sqm} × {ai_difficulty_multiplier}",
            f"{base_pay:.2f}",
        ))

        # 2. Hourly floor
        hourly_floor = ai_estimated_hours * config.min_hourly_rate
        if hourly_floor > base_pay:
            base_pay = hourly_floor
            surcharges.append(HOURLY_FLOOR_LABEL)
            trace.append(TraceStep(
                "Hourly Floor",
                f"{ai_estimated_hours} h × {config.min_hourly_rate} exceeds area pay",
                f"{base_pay:.2f}",
            ))

        # 3. Surcharges, order matters: they compound on the adjusted base
        if options.has_high_weeds:
            base_pay *= config.tall_grass_multiplier
            surcharges.append(f"Yuyos Altos ({_percent_label(config.tall_grass_multiplier)})")
            trace.append(TraceStep("Surcharge", f"High weeds × {config.tall_grass_multiplier}", f"{base_pay:.2f}"))

        if options.complicated_access:
            base_pay += config.difficult_access_fee
            surcharges.append(f"Acceso Complicado ({_amount_label(config.difficult_access_fee)})")
            trace.append(TraceStep("Surcharge", f"Complicated access + {config.difficult_access_fee}", f"{base_pay:.2f}"))

        if options.has_slope:
            base_pay *= config.slope_multiplier
            surcharges.append(f"Terreno Inclinado ({_percent_label(config.slope_multiplier)})")
            trace.append(TraceStep("Surcharge", f"Slope × {config.slope_multiplier}", f"{base_pay:.2f}"))

        # 4-5. Travel and worker net
        worker_net = round_currency(base_pay + config.travel_base_fee)
        trace.append(TraceStep("Worker Net", f"Base pay + travel {config.travel_base_fee}", str(worker_net)))

        # 6-9. Commission inversion, platform fee, taxes
        pretax_total, platform_fee, taxes = self._invert_commission(
            worker_net, commission, config.tax_percentage, trace, worker_tier
        )
        total = pretax_total + taxes

        snapshot = CalculationSnapshot(
            base_rate=config.base_price_per_sqm,
            difficulty_multiplier=ai_difficulty_multiplier,
            applied_surcharges=tuple(surcharges),
            config_version=config.version,
            worker_tier_applied=worker_tier,
            trace=tuple(trace),
        )

        logger.debug(
            "Priced job: %s m², %s h, tier %s -> total %s (worker %s, fee %s, taxes %s) [%s]",
            square_meters, ai_estimated_hours, worker_tier.value,
            total, worker_net, platform_fee, taxes, config.version,
        )

        return PriceBreakdown(
            total=total,
            worker_net=worker_net,
            platform_fee=platform_fee,
            taxes=taxes,
            calculation_snapshot=snapshot,
            currency=config.currency,
        )

    def estimate(self, job: JobAttributes) -> PriceBreakdown:
        """Price a job record (estimate-preview and job-creation flows)."""
        return self.calculate_service_price(
            square_meters=job.square_meters,
            ai_estimated_hours=job.ai_estimated_hours,
            ai_difficulty_multiplier=job.ai_difficulty_multiplier,
            options=job.options,
            worker_tier=job.worker_tier,
        )

    def calculate_cancellation_fee(self, total_price: float) -> int:
        """Late-cancellation penalty on a total price."""
        if not math.isfinite(total_price) or total_price < 0:
            raise InvalidJobAttributes(f"Total price must be a finite non-negative amount, got {total_price}")
        config = self.config_provider.get_system_config()
        return round_currency(total_price * config.cancel_penalty_percentage)

    def calculate_extra_time_adjustment(
        self,
        breakdown: PriceBreakdown,
        extra_minutes: float,
    ) -> PriceAdjustment:
        """
        Additive adjustment for approved extra time on a job.

        The worker earns the hourly floor rate for the extra time; the
        commission of the tier recorded in the original breakdown is then
        inverted on top, the same way as for the base price. The original
        breakdown is left untouched.
        """
        if not math.isfinite(extra_minutes) or not extra_minutes > 0:
            raise InvalidJobAttributes(f"Extra minutes must be a finite positive amount, got {extra_minutes}")

        config = self.config_provider.get_system_config()
        tier = breakdown.calculation_snapshot.worker_tier_applied
        commission = self._commission_for(self.config_provider.get_tier_config(tier))

        worker_extra = round_currency(extra_minutes / 60 * config.min_hourly_rate)
        pretax_total, platform_fee, taxes = self._invert_commission(
            worker_extra, commission, config.tax_percentage, [], tier
        )

        if config.version != breakdown.calculation_snapshot.config_version:
            logger.info(
                "Extra time priced with config %s, original breakdown used %s",
                config.version, breakdown.calculation_snapshot.config_version,
            )

        return PriceAdjustment(
            reason=f"Tiempo Extra ({extra_minutes:g} min)",
            total=pretax_total + taxes,
            worker_net=worker_extra,
            platform_fee=platform_fee,
            taxes=taxes,
            currency=config.currency,
        )

    @staticmethod
    def _validate_job(square_meters: float, ai_estimated_hours: float, ai_difficulty_multiplier: float):
        errors = []
        if not math.isfinite(square_meters) or not square_meters > 0:
            errors.append(f"square_meters must be a finite positive number, got {square_meters}")
        if not math.isfinite(ai_estimated_hours) or not ai_estimated_hours > 0:
            errors.append(f"ai_estimated_hours must be a finite positive number, got {ai_estimated_hours}")
        if not MIN_DIFFICULTY_MULTIPLIER <= ai_difficulty_multiplier <= MAX_DIFFICULTY_MULTIPLIER:
            errors.append(
                f"ai_difficulty_multiplier must lie in "
                f"[{MIN_DIFFICULTY_MULTIPLIER}, {MAX_DIFFICULTY_MULTIPLIER}], got {ai_difficulty_multiplier}"
            )
        if errors:
            raise InvalidJobAttributes("; ".join(errors))

    @staticmethod
    def _commission_for(tier_config: TierConfig) -> float:
        commission = tier_config.commission_fee
        if not 0 <= commission < 1:
            raise InvalidTierConfiguration(
                f"Commission for {tier_config.tier.value} must lie in [0, 1), got {commission}"
            )
        return commission

    @staticmethod
    def _invert_commission(
        worker_net: int,
        commission: float,
        tax_percentage: float,
        trace: list,
        tier: WorkerTier,
    ) -> tuple[int, int, int]:
        """Return (pre-tax total, platform fee, taxes) for a worker payout."""
        pretax_total = round_currency(worker_net / (1 - commission))
        platform_fee = pretax_total - worker_net
        taxes = round_currency(platform_fee * tax_percentage)
        trace.append(TraceStep(
            "Commission",
            f"{worker_net} / (1 − {commission}) for {tier.value}",
            str(pretax_total),
        ))
        trace.append(TraceStep("Platform Fee", "Pre-tax total − worker net", str(platform_fee)))
        trace.append(TraceStep("Taxes", f"Platform fee × {tax_percentage}", str(taxes)))
        return pretax_total, platform_fee, taxes
