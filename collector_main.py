"""Entry point for the development collector."""

import logging
import os

from action_logger.collector import create_app


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    host = os.environ.get("COLLECTOR_HOST", "0.0.0.0")
    port = int(os.environ.get("COLLECTOR_PORT", "5000"))
    max_batches = int(os.environ.get("COLLECTOR_MAX_BATCHES", "1000"))

    app = create_app(max_batches=max_batches)
    logging.getLogger(__name__).info("Starting collector on %s:%d", host, port)
    app.run(host=host, port=port)


if __name__ == "__main__":
    main()
