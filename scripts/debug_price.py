"""
Print the full calculation trace of a job and compare totals across tiers.

Usage:
    python scripts/debug_price.py --sqm 20 --hours 1 --difficulty 1.0 --weeds
"""
import argparse
import sys
from pathlib import Path

import pandas as pd

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from service_pricing.config.settings import get_settings
from service_pricing.engine import (
    FileConfigProvider, PricingEngine, SurchargeOptions, WorkerTier, format_currency,
)


def debug(args):
    settings = get_settings()
    provider = FileConfigProvider(settings.config_dir)
    engine = PricingEngine(provider)
    options = SurchargeOptions(
        has_high_weeds=args.weeds,
        complicated_access=args.access,
        has_slope=args.slope,
    )

    config = provider.get_system_config()
    print(f"Config version: {config.version} (fallback: {provider.using_fallback})")

    rows = []
    for tier in WorkerTier:
        breakdown = engine.calculate_service_price(args.sqm, args.hours, args.difficulty, options, tier)
        rows.append({
            "Tier": tier.value,
            "Worker Net": breakdown.worker_net,
            "Platform Fee": breakdown.platform_fee,
            "Taxes": breakdown.taxes,
            "Total": breakdown.total,
            "Display": format_currency(breakdown.total, breakdown.currency),
        })
        if tier == WorkerTier(args.tier):
            print(f"\n--- Trace for {tier.value} ---")
            print(breakdown.calculation_snapshot.get_trace_text())
            print(f"Surcharges: {', '.join(breakdown.calculation_snapshot.applied_surcharges) or 'none'}")

    print("\n--- Tier comparison ---")
    print(pd.DataFrame(rows).to_string(index=False))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Debug a job price calculation")
    parser.add_argument("--sqm", type=float, required=True)
    parser.add_argument("--hours", type=float, required=True)
    parser.add_argument("--difficulty", type=float, default=1.0)
    parser.add_argument("--weeds", action="store_true")
    parser.add_argument("--access", action="store_true")
    parser.add_argument("--slope", action="store_true")
    parser.add_argument("--tier", default="STARTER", choices=[t.value for t in WorkerTier])
    debug(parser.parse_args())
