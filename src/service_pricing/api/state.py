"""
Shared engine instance for the API.
"""
from ..config.settings import get_settings
from ..engine import FileConfigProvider, PricingEngine

settings = get_settings()
config_provider = FileConfigProvider(
    settings.config_dir,
    allow_fallback=settings.allow_config_fallback,
    currency=settings.currency,
)
engine = PricingEngine(config_provider)
