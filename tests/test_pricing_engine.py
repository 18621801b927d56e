"""
Pricing engine regression tests.

Reference vectors use the bundled default rate table (v1.0.2_Summer_2024)
and should fail if the calculation order or rounding points change.
"""
import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from service_pricing.engine import (
    ConfigProvider,
    JobAttributes,
    PricingEngine,
    StaticConfigProvider,
    SurchargeOptions,
    TierConfig,
    WorkerTier,
)
from service_pricing.engine.config_provider import DEFAULT_SYSTEM_CONFIG, DEFAULT_TIER_CONFIGS
from service_pricing.engine.exceptions import InvalidJobAttributes, InvalidTierConfiguration
from service_pricing.engine.pricing_engine import HOURLY_FLOOR_LABEL
from service_pricing.engine.rounding import round_currency


ALL_SURCHARGES = SurchargeOptions(has_high_weeds=True, complicated_access=True, has_slope=True)


@pytest.fixture
def engine():
    return PricingEngine(StaticConfigProvider())


def test_small_plot_hits_hourly_floor(engine):
    """20 m², 1 h, no surcharges, STARTER → 10525 final total."""
    breakdown = engine.calculate_service_price(20, 1, 1.0, SurchargeOptions(), WorkerTier.STARTER)

    assert breakdown.worker_net == 7500
    assert breakdown.pretax_total == 10000
    assert breakdown.platform_fee == 2500
    assert breakdown.taxes == 525
    assert breakdown.total == 10525
    assert breakdown.currency == "ARS"
    assert breakdown.calculation_snapshot.applied_surcharges == (HOURLY_FLOOR_LABEL,)


def test_snapshot_records_config_and_tier(engine):
    breakdown = engine.calculate_service_price(20, 1, 1.3)
    snapshot = breakdown.calculation_snapshot

    assert snapshot.config_version == "v1.0.2_Summer_2024"
    assert snapshot.base_rate == 150
    assert snapshot.difficulty_multiplier == 1.3
    assert snapshot.worker_tier_applied == WorkerTier.STARTER
    assert "Commission" in snapshot.get_trace_text()


def test_all_surcharges_compound_in_order(engine):
    """80 m² × 150 × 1.25 = 15000 → ×1.30 → +2000 → ×1.15 → +1500 travel."""
    breakdown = engine.calculate_service_price(80, 1, 1.25, ALL_SURCHARGES, WorkerTier.STARTER)

    assert breakdown.worker_net == 26225
    assert breakdown.pretax_total == 34967
    assert breakdown.platform_fee == 8742
    assert breakdown.taxes == 1836
    assert breakdown.total == 36803
    assert breakdown.calculation_snapshot.applied_surcharges == (
        "Yuyos Altos (+30%)",
        "Acceso Complicado (+$2000)",
        "Terreno Inclinado (+15%)",
    )


def test_surcharges_multiply_the_floored_base(engine):
    """The hourly floor (12000) is what the weeds multiplier scales, not the area pay."""
    breakdown = engine.calculate_service_price(
        10, 2, 1.0, SurchargeOptions(has_high_weeds=True), WorkerTier.STARTER
    )

    assert breakdown.worker_net == 17100
    assert breakdown.total == 23997
    assert breakdown.calculation_snapshot.applied_surcharges == (
        HOURLY_FLOOR_LABEL,
        "Yuyos Altos (+30%)",
    )


def test_area_pay_above_floor_has_no_floor_adjustment(engine):
    breakdown = engine.calculate_service_price(100, 1, 1.0)

    # 100 × 150 = 15000 > 6000 floor
    assert breakdown.worker_net == 16500
    assert HOURLY_FLOOR_LABEL not in breakdown.calculation_snapshot.applied_surcharges


def test_elite_tier_reference_vector(engine):
    breakdown = engine.calculate_service_price(20, 1, 1.0, worker_tier=WorkerTier.ELITE)

    # 7500 / 0.85 = 8823.53 → 8824
    assert breakdown.worker_net == 7500
    assert breakdown.platform_fee == 1324
    assert breakdown.taxes == 278
    assert breakdown.total == 9102
    assert breakdown.calculation_snapshot.worker_tier_applied == WorkerTier.ELITE


def test_estimate_accepts_job_record(engine):
    job = JobAttributes(square_meters=20, ai_estimated_hours=1)
    assert engine.estimate(job).total == 10525


JOB_GRID = [
    (sqm, hours, difficulty, options, tier)
    for sqm in (5, 37.5, 120, 640)
    for hours in (0.5, 3)
    for difficulty in (1.0, 1.45, 2.0)
    for options in (SurchargeOptions(), ALL_SURCHARGES)
    for tier in WorkerTier
]


@pytest.mark.parametrize("sqm,hours,difficulty,options,tier", JOB_GRID)
def test_breakdown_invariants(engine, sqm, hours, difficulty, options, tier):
    breakdown = engine.calculate_service_price(sqm, hours, difficulty, options, tier)
    commission = DEFAULT_TIER_CONFIGS[tier].commission_fee

    # Conservation
    assert breakdown.worker_net + breakdown.platform_fee == breakdown.pretax_total
    assert breakdown.pretax_total + breakdown.taxes == breakdown.total

    # Tax on platform fee only
    assert breakdown.taxes == round_currency(breakdown.platform_fee * DEFAULT_SYSTEM_CONFIG.tax_percentage)

    # Commission is a share of the pre-tax total, within one rounding unit
    assert abs(breakdown.platform_fee - commission * breakdown.pretax_total) <= 1
    assert breakdown.platform_fee >= 0


@pytest.mark.parametrize("sqm,hours", [(10, 1), (25, 2), (15, 0.5)])
def test_worker_net_follows_floor_when_floor_wins(engine, sqm, hours):
    breakdown = engine.calculate_service_price(sqm, hours, 1.0)
    floor = hours * DEFAULT_SYSTEM_CONFIG.min_hourly_rate

    assert sqm * DEFAULT_SYSTEM_CONFIG.base_price_per_sqm < floor
    assert breakdown.worker_net == round_currency(floor + DEFAULT_SYSTEM_CONFIG.travel_base_fee)
    assert HOURLY_FLOOR_LABEL in breakdown.calculation_snapshot.applied_surcharges


def test_total_is_monotonic_in_area(engine):
    totals = [engine.calculate_service_price(sqm, 1, 1.2).total for sqm in range(1, 400, 3)]
    assert totals == sorted(totals)


def test_total_is_monotonic_in_difficulty(engine):
    multipliers = [1.0 + step / 20 for step in range(21)]
    totals = [engine.calculate_service_price(90, 1, m).total for m in multipliers]
    assert totals == sorted(totals)


@pytest.mark.parametrize("flag", ["has_high_weeds", "complicated_access", "has_slope"])
def test_enabling_a_surcharge_never_lowers_total(engine, flag):
    for sqm in (10, 60, 300):
        base = engine.calculate_service_price(sqm, 1.5, 1.1)
        flagged = engine.calculate_service_price(sqm, 1.5, 1.1, SurchargeOptions(**{flag: True}))
        assert flagged.total >= base.total, f"{flag} lowered total for {sqm} m²"


@pytest.mark.parametrize("sqm", [5, 20, 75, 300, 1000])
def test_higher_tier_never_costs_client_more(engine, sqm):
    starter = engine.calculate_service_price(sqm, 1, 1.0, worker_tier=WorkerTier.STARTER)
    pro = engine.calculate_service_price(sqm, 1, 1.0, worker_tier=WorkerTier.PRO)
    elite = engine.calculate_service_price(sqm, 1, 1.0, worker_tier=WorkerTier.ELITE)

    assert starter.worker_net == pro.worker_net == elite.worker_net
    assert elite.total <= pro.total <= starter.total


@pytest.mark.parametrize("sqm,hours,difficulty", [
    (0, 1, 1.0),
    (-5, 1, 1.0),
    (20, 0, 1.0),
    (20, -1, 1.0),
    (20, 1, 0.9),
    (20, 1, 2.1),
    (float('nan'), 1, 1.0),
    (float('inf'), 1, 1.0),
    (20, float('inf'), 1.0),
    (20, float('nan'), 1.0),
    (20, 1, float('inf')),
])
def test_invalid_job_attributes_are_rejected(engine, sqm, hours, difficulty):
    with pytest.raises(InvalidJobAttributes):
        engine.calculate_service_price(sqm, hours, difficulty)


def test_difficulty_bounds_are_inclusive(engine):
    assert engine.calculate_service_price(20, 1, 1.0).total > 0
    assert engine.calculate_service_price(20, 1, 2.0).total > 0


def test_very_large_area_still_prices(engine):
    breakdown = engine.calculate_service_price(1e26, 1, 1.0)

    assert isinstance(breakdown.worker_net, int)
    assert breakdown.worker_net > 10**28
    assert breakdown.worker_net + breakdown.platform_fee == breakdown.pretax_total
    assert breakdown.total == breakdown.pretax_total + breakdown.taxes


class _BrokenTierProvider(ConfigProvider):
    """Provider that skips tier validation to reach the engine's own check."""

    def __init__(self, commission):
        self.tiers = dict(DEFAULT_TIER_CONFIGS)
        self.tiers[WorkerTier.STARTER] = TierConfig(
            tier=WorkerTier.STARTER, name="Starter", min_points=0, commission_fee=commission
        )

    def get_system_config(self):
        return DEFAULT_SYSTEM_CONFIG

    def _tier_table(self):
        return self.tiers


@pytest.mark.parametrize("commission", [1.0, 1.5, -0.1])
def test_commission_outside_range_is_a_configuration_error(commission):
    engine = PricingEngine(_BrokenTierProvider(commission))
    with pytest.raises(InvalidTierConfiguration):
        engine.calculate_service_price(20, 1, 1.0)


@pytest.mark.parametrize("total,expected", [
    (10525, 3158),
    (10000, 3000),
    (0, 0),
    (1, 0),
    (5, 2),
])
def test_cancellation_fee(engine, total, expected):
    assert engine.calculate_cancellation_fee(total) == expected


@pytest.mark.parametrize("total", [-1, float('nan'), float('inf')])
def test_cancellation_fee_rejects_invalid_total(engine, total):
    with pytest.raises(InvalidJobAttributes):
        engine.calculate_cancellation_fee(total)


def test_extra_time_is_an_additive_adjustment(engine):
    breakdown = engine.calculate_service_price(20, 1, 1.0)
    adjustment = engine.calculate_extra_time_adjustment(breakdown, 30)

    assert adjustment.worker_net == 3000
    assert adjustment.platform_fee == 1000
    assert adjustment.taxes == 210
    assert adjustment.total == 4210
    assert adjustment.reason == "Tiempo Extra (30 min)"

    combined = adjustment.apply_to(breakdown)
    assert combined["total"] == 14735
    assert combined["worker_net"] == 10500

    # Original breakdown untouched
    assert breakdown.total == 10525


def test_extra_time_uses_tier_from_snapshot(engine):
    breakdown = engine.calculate_service_price(20, 1, 1.0, worker_tier=WorkerTier.ELITE)
    adjustment = engine.calculate_extra_time_adjustment(breakdown, 60)

    # 6000 / 0.85 = 7058.82 → 7059
    assert adjustment.worker_net == 6000
    assert adjustment.platform_fee == 1059


@pytest.mark.parametrize("minutes", [0, -15, float('nan'), float('inf')])
def test_extra_time_requires_positive_minutes(engine, minutes):
    breakdown = engine.calculate_service_price(20, 1, 1.0)
    with pytest.raises(InvalidJobAttributes):
        engine.calculate_extra_time_adjustment(breakdown, minutes)


def test_breakdown_to_dict_is_persistable(engine):
    data = engine.calculate_service_price(20, 1, 1.0).to_dict()

    assert data["total"] == 10525
    assert data["calculation_snapshot"]["worker_tier_applied"] == "STARTER"
    assert data["calculation_snapshot"]["applied_surcharges"] == [HOURLY_FLOOR_LABEL]
