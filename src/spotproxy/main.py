"""
Main entrypoint for spotproxy.

What it does:
- Loads runtime settings from `config/config.yaml` and environment variables
  using the env-prefix convention (e.g., `BINANCE_SPOT_*`).
- Starts the Prometheus metrics server.
- Serves the proxy app with uvicorn.

Where it is used:
- Invoked by `python -m spotproxy.main` or the `spotproxy` console script.
"""
import logging
import os

import uvicorn

from spotproxy.api.app import create_app
from spotproxy.config.loader import load_settings
from spotproxy.metrics.core import start_server_safe


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings(os.getenv("SPOTPROXY_CONFIG", "config/config.yaml"))
    logging.info(f"Resolved env prefix: {settings.env_prefix}")
    if not settings.has_credentials:
        logging.warning(
            f"{settings.env_prefix}_API_KEY/{settings.env_prefix}_API_SECRET not set; signed routes will fail"
        )
    start_server_safe(settings.metrics_port)
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port, log_config=None)


if __name__ == "__main__":
    main()
