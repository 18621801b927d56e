"""
Start the pricing API with uvicorn.

Host, port and auto-reload come from the SERVICE_PRICING_HOST,
SERVICE_PRICING_PORT and SERVICE_PRICING_RELOAD environment variables.
"""
import os
import sys

import uvicorn

SRC_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from service_pricing.config.settings import configure_logging, get_settings


def main():
    settings = get_settings()
    configure_logging(settings)

    print(f"Service Pricing API on http://{settings.api_host}:{settings.api_port} "
          f"(config: {settings.config_dir})")
    uvicorn.run(
        "service_pricing.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        app_dir=SRC_PATH,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
