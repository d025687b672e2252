"""Prometheus exposition for the proxy process.

The proxy serves its own routes through uvicorn; metrics are exposed on a
separate port (`metrics_port` in config) so scrapes never hit the app.
"""

import logging
from typing import Optional

from prometheus_client import start_http_server


def start_server_safe(port: int) -> Optional[int]:
    """Expose upstream/fill/summary counters on `port`; 0 disables.

    A port already in use is logged and skipped: the proxy keeps serving
    requests without metrics rather than failing to start.
    """
    if not port:
        logging.info("Prometheus metrics server disabled (metrics_port=0)")
        return None
    try:
        start_http_server(port)
    except OSError as e:
        logging.warning(f"Metrics port :{port} unavailable, continuing without exposition: {e}")
        return None
    logging.info(f"Metrics exposed on :{port}/metrics")
    return port
