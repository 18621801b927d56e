"""Engine subpackage - core pricing logic and config lookup."""
from .pricing_engine import PricingEngine
from .config_provider import ConfigProvider, StaticConfigProvider, FileConfigProvider
from .models import (
    WorkerTier, SystemConfig, TierConfig, SurchargeOptions, JobAttributes,
    PriceBreakdown, PriceAdjustment, CalculationSnapshot,
)
from .rounding import round_currency, format_currency

__all__ = [
    'PricingEngine', 'ConfigProvider', 'StaticConfigProvider', 'FileConfigProvider',
    'WorkerTier', 'SystemConfig', 'TierConfig', 'SurchargeOptions', 'JobAttributes',
    'PriceBreakdown', 'PriceAdjustment', 'CalculationSnapshot',
    'round_currency', 'format_currency',
]
