"""
Config Provider - Supplies the system rate table and worker tier table.

The pricing engine receives a provider explicitly instead of reading a
module-level default, so a calculation can be reproduced against a fixed
config snapshot.
"""
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import pandas as pd

from .exceptions import (
    ConfigurationUnavailable,
    InvalidJobAttributes,
    InvalidSystemConfiguration,
    InvalidTierConfiguration,
)
from .models import SystemConfig, TierConfig, WorkerTier

logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_CONFIG = SystemConfig(
    version="v1.0.2_Summer_2024",
    base_price_per_sqm=150,
    min_hourly_rate=6000,
    travel_base_fee=1500,
    tall_grass_multiplier=1.30,
    difficult_access_fee=2000,
    tax_percentage=0.21,
    cancel_penalty_percentage=0.30,
    slope_multiplier=1.15,
    currency="ARS",
    max_service_radius_km=15,
)

DEFAULT_TIER_CONFIGS: dict[WorkerTier, TierConfig] = {
    WorkerTier.STARTER: TierConfig(
        tier=WorkerTier.STARTER,
        name="Starter",
        min_points=0,
        commission_fee=0.25,
        benefits=("Acceso a trabajos estándar",),
        priority_score_bonus=0,
    ),
    WorkerTier.PRO: TierConfig(
        tier=WorkerTier.PRO,
        name="Pro",
        min_points=500,
        commission_fee=0.20,
        benefits=("Comisión reducida", "Prioridad media", "Soporte Preferencial"),
        priority_score_bonus=10,
    ),
    WorkerTier.ELITE: TierConfig(
        tier=WorkerTier.ELITE,
        name="Elite",
        min_points=1000,
        commission_fee=0.15,
        benefits=("Mínima comisión", "Prioridad FLASH (10s antes)", "Retiros Instantáneos"),
        priority_score_bonus=25,
    ),
}


def validate_tier_table(tiers: dict[WorkerTier, TierConfig]) -> None:
    """
    Check a tier table for completeness and ordering.

    Every tier must be present, commissions must lie in [0, 1) and strictly
    decrease with rank, and point thresholds must strictly increase.
    """
    missing = [t.value for t in WorkerTier if t not in tiers]
    if missing:
        raise InvalidTierConfiguration(f"Missing tier config for: {', '.join(missing)}")

    ordered = sorted(tiers.values(), key=lambda c: c.tier.rank)
    for config in ordered:
        if not 0 <= config.commission_fee < 1:
            raise InvalidTierConfiguration(
                f"Commission for {config.tier.value} must lie in [0, 1), got {config.commission_fee}"
            )
        if config.min_points < 0:
            raise InvalidTierConfiguration(f"min_points for {config.tier.value} must be non-negative")

    if ordered[0].min_points != 0:
        raise InvalidTierConfiguration(f"{ordered[0].tier.value} must start at 0 points")

    for lower, higher in zip(ordered, ordered[1:]):
        if higher.commission_fee >= lower.commission_fee:
            raise InvalidTierConfiguration(
                f"{higher.tier.value} commission must be below {lower.tier.value} commission"
            )
        if higher.min_points <= lower.min_points:
            raise InvalidTierConfiguration(
                f"{higher.tier.value} min_points must exceed {lower.tier.value} min_points"
            )


class ConfigProvider:
    """
    Source of the active system config and tier table.

    Subclasses implement `get_system_config` and `_tier_table`; lookup and
    classification are shared.
    """

    def get_system_config(self) -> SystemConfig:
        raise NotImplementedError

    def _tier_table(self) -> dict[WorkerTier, TierConfig]:
        raise NotImplementedError

    def get_tier_config(self, tier: WorkerTier) -> TierConfig:
        """Resolve the config for a tier. Total over WorkerTier."""
        return self._tier_table()[WorkerTier(tier)]

    def get_tier_configs(self) -> list[TierConfig]:
        """All tiers, lowest rank first."""
        return sorted(self._tier_table().values(), key=lambda c: c.tier.rank)

    def calculate_tier_from_points(self, points: int) -> WorkerTier:
        """
        Classify a worker by accumulated reputation points.

        Thresholds are checked from the highest tier down; the first one met
        wins, so a worker exactly on a threshold gets the higher tier.
        """
        if points < 0:
            raise InvalidJobAttributes(f"Points must be non-negative, got {points}")

        for config in reversed(self.get_tier_configs()):
            if points >= config.min_points:
                return config.tier
        return WorkerTier.STARTER


class StaticConfigProvider(ConfigProvider):
    """Provider over a fixed in-memory snapshot."""

    def __init__(
        self,
        system_config: Optional[SystemConfig] = None,
        tier_configs: Optional[dict[WorkerTier, TierConfig]] = None,
    ):
        self.system_config = system_config or DEFAULT_SYSTEM_CONFIG
        self.tier_configs = dict(tier_configs or DEFAULT_TIER_CONFIGS)
        validate_tier_table(self.tier_configs)

    def get_system_config(self) -> SystemConfig:
        return self.system_config

    def _tier_table(self) -> dict[WorkerTier, TierConfig]:
        return self.tier_configs


def load_tier_table(path: Path) -> dict[WorkerTier, TierConfig]:
    """Load tier configs from a CSV file (tier,name,min_points,commission_fee,benefits,priority_score_bonus)."""
    df = pd.read_csv(path, dtype=str).fillna('')
    df.columns = [c.strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()

    tiers = {}
    for _, row in df.iterrows():
        try:
            tier = WorkerTier(row['tier'].upper())
        except ValueError:
            raise InvalidTierConfiguration(f"Unknown tier '{row['tier']}' in {path.name}") from None
        benefits = tuple(b.strip() for b in row.get('benefits', '').split('|') if b.strip())
        tiers[tier] = TierConfig(
            tier=tier,
            name=row.get('name') or tier.value.title(),
            min_points=int(row['min_points']),
            commission_fee=float(row['commission_fee']),
            benefits=benefits,
            priority_score_bonus=int(row.get('priority_score_bonus') or 0),
        )
    validate_tier_table(tiers)
    return tiers


def load_system_config(path: Path) -> SystemConfig:
    """Load the system rate table from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise InvalidSystemConfiguration(
            f"{path.name} must hold a JSON object, got {type(data).__name__}"
        )
    return SystemConfig.from_dict(data)


class FileConfigProvider(ConfigProvider):
    """
    Provider backed by `system_config.json` and `tier_config.csv`.

    Files are read on construction and on `reload()`. When a reload fails the
    last-known-good tables stay active; when nothing was ever loaded the
    reference defaults are used. Both cases are logged. With
    `allow_fallback=False` a failed first load raises ConfigurationUnavailable.
    A `currency` given here overrides the one in the loaded or default table.
    """

    SYSTEM_CONFIG_FILE = 'system_config.json'
    TIER_CONFIG_FILE = 'tier_config.csv'

    def __init__(self, config_dir: Path, allow_fallback: bool = True, currency: Optional[str] = None):
        self.config_dir = Path(config_dir)
        self.allow_fallback = allow_fallback
        self.currency = currency
        self._system_config: Optional[SystemConfig] = None
        self._tier_configs: Optional[dict[WorkerTier, TierConfig]] = None
        self.using_fallback = False
        self.reload()

    def reload(self) -> None:
        """Re-read both tables from disk."""
        system_path = self.config_dir / self.SYSTEM_CONFIG_FILE
        tier_path = self.config_dir / self.TIER_CONFIG_FILE
        try:
            system_config = load_system_config(system_path)
            tier_configs = load_tier_table(tier_path)
        except (OSError, ValueError, KeyError, TypeError, InvalidSystemConfiguration, InvalidTierConfiguration) as e:
            self._handle_load_failure(e)
            return

        self._system_config = self._with_currency(system_config)
        self._tier_configs = tier_configs
        self.using_fallback = False
        logger.info("Loaded pricing config %s from %s", system_config.version, self.config_dir)

    def _handle_load_failure(self, error: Exception) -> None:
        if self._system_config is not None:
            logger.warning(
                "Pricing config reload from %s failed (%s); keeping last-known-good version %s",
                self.config_dir, error, self._system_config.version,
            )
            return

        if not self.allow_fallback:
            raise ConfigurationUnavailable(
                f"Pricing config could not be loaded from {self.config_dir}: {error}"
            ) from error

        logger.warning(
            "Pricing config could not be loaded from %s (%s); using built-in defaults %s",
            self.config_dir, error, DEFAULT_SYSTEM_CONFIG.version,
        )
        self._system_config = self._with_currency(DEFAULT_SYSTEM_CONFIG)
        self._tier_configs = dict(DEFAULT_TIER_CONFIGS)
        self.using_fallback = True

    def _with_currency(self, config: SystemConfig) -> SystemConfig:
        if self.currency and self.currency != config.currency:
            return replace(config, currency=self.currency)
        return config

    def get_system_config(self) -> SystemConfig:
        return self._system_config

    def _tier_table(self) -> dict[WorkerTier, TierConfig]:
        return self._tier_configs
