"""Run the daily pipeline with configuration from ``HAZE_*`` environment variables.

    HAZE_AOI_PATH=aoi.gpkg HAZE_INPUT_DIR=era5 python -m haze
"""

from __future__ import annotations

import logging
import os

from haze.core.config import HazeConfig
from haze.core.exceptions import HazeError
from haze.core.logging import configure_logging
from haze.orchestrators.process_daily import process_daily

logger = logging.getLogger("haze")


def main() -> int:
    configure_logging(os.getenv("HAZE_LOG_LEVEL", "INFO").upper())
    try:
        summary = process_daily(HazeConfig.from_env())
    except HazeError as exc:
        logger.error("haze failed | %s", exc.to_error_dict())
        return 1
    return 0 if summary["rasters_failed"] == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
