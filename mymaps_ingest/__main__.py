"""Command-line entry point: ``python -m mymaps_ingest`` / ``mymaps-ingest``.

Configuration comes entirely from the environment (see
``mymaps_ingest.core.config``).  Exit status is 0 when every layer was
written and 1 on the first fatal error.
"""

from __future__ import annotations

import logging
import os

from mymaps_ingest.core.config import PipelineConfig
from mymaps_ingest.core.exceptions import PipelineError
from mymaps_ingest.orchestrators.layer_pipeline import run_layers

logger = logging.getLogger("mymaps_ingest")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def main() -> int:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format=LOG_FORMAT,
    )

    try:
        config = PipelineConfig.from_env()
    except PipelineError as exc:
        logger.error("%s", exc.describe())
        return 1
    except ValueError as exc:
        logger.error("Invalid numeric configuration value: %s", exc)
        return 1

    run = run_layers(config)
    for name, path in run.handoff:
        logger.info("Ready for tiling | layer=%s | path=%s", name, path)
    return run.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
