"""
Centralized settings and path configuration for the pricing service.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_package_root() -> Path:
    """Get the package directory (where the bundled data/ folder lives)."""
    return Path(__file__).resolve().parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Directory holding system_config.json and tier_config.csv
    config_dir: Path

    # Logging
    log_level: str = "INFO"

    # Fall back to built-in rate tables when config files cannot be read
    allow_config_fallback: bool = True

    # Overrides the currency of the loaded rate table when set
    currency: Optional[str] = None

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> 'Settings':
        """Load settings from the environment and the package layout."""
        env_dir = os.getenv("SERVICE_PRICING_CONFIG_DIR")
        root = config_dir or (Path(env_dir) if env_dir else get_package_root() / 'data')

        return cls(
            config_dir=root,
            log_level=os.getenv("SERVICE_PRICING_LOG_LEVEL", "INFO").upper(),
            allow_config_fallback=os.getenv("SERVICE_PRICING_ALLOW_FALLBACK", "true").lower() == "true",
            currency=(os.getenv("SERVICE_PRICING_CURRENCY") or "").strip().upper() or None,
            api_host=os.getenv("SERVICE_PRICING_HOST", "0.0.0.0"),
            api_port=int(os.getenv("SERVICE_PRICING_PORT", "8000")),
            api_reload=os.getenv("SERVICE_PRICING_RELOAD", "false").lower() == "true",
        )


def configure_logging(settings: Optional['Settings'] = None) -> None:
    """Apply the configured log level to the root logger."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None
