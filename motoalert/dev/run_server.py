from __future__ import annotations

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from motoalert.bootstrap import build_app_system


def main() -> None:
    """
    Start the trigger hook server and its worker pool.

    Notes
    -----
    - Loads configuration from `config.yaml` by default.
    - Secrets can live in a `.env` file next to the working directory.
    - Optional CLI usage:
        python -m motoalert.dev.run_server --config path/to/config.yaml
    """
    load_dotenv(Path.cwd() / ".env")

    config_path = None
    if "--config" in sys.argv:
        i = sys.argv.index("--config")
        if i + 1 < len(sys.argv):
            config_path = sys.argv[i + 1]

    wiring = build_app_system(config_path=config_path)

    logging.basicConfig(
        level=getattr(logging, wiring.config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if wiring.config.hook.token is None:
        logging.getLogger("motoalert.trigger").warning(
            "hook token not configured, /triggers/latest accepts unauthenticated requests"
        )

    wiring.workers.start()
    try:
        # IMPORTANT: do NOT use debug=True in production
        wiring.app.run(host=wiring.config.hook.host, port=wiring.config.hook.port, debug=False)
    finally:
        wiring.workers.stop()


if __name__ == "__main__":
    main()
