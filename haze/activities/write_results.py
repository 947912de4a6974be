"""Result writer: one plain-text file per processed day.

Each line holds the centroid and the zonal mean of one AOI polygon::

    <x> <y> <value> <tag>

with ``x``/``y`` at four decimals, ``value`` at single precision rendered
with six decimals, and a fixed dataset tag (``ERA`` by default).  Files are
named ``{prefix}{YYYY-MM-DD}.txt``, for example ``WVP_2020-01-31.txt``.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from haze.core.constants import (
    DEFAULT_DATASET_TAG,
    DEFAULT_OUTPUT_PREFIX,
    KG_PER_SQM_TO_G_PER_SQCM,
    OUTPUT_SUFFIX,
)
from haze.core.exceptions import ResultWriteError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from haze.models.zonal import ZonalMean

logger = logging.getLogger("haze.activities.write_results")


def output_path_for(
    output_dir: str | Path,
    date_label: str,
    prefix: str = DEFAULT_OUTPUT_PREFIX,
) -> Path:
    """Path of the result file for one day (``WVP_2020-01-31.txt``)."""
    return Path(output_dir) / f"{prefix}{date_label}{OUTPUT_SUFFIX}"


def kg_per_sqm_to_g_per_sqcm(value: float) -> float:
    """Convert a water-vapour column from kg/m^2 to g/cm^2."""
    return value * KG_PER_SQM_TO_G_PER_SQCM


def convert_units(means: Iterable[ZonalMean]) -> list[ZonalMean]:
    """Return copies of ``means`` with values converted from kg/m^2 to g/cm^2."""
    return [dataclasses.replace(m, value=kg_per_sqm_to_g_per_sqcm(m.value)) for m in means]


def format_line(mean: ZonalMean, tag: str = DEFAULT_DATASET_TAG) -> str:
    """Render one result line (without the trailing newline)."""
    value = float(np.float32(mean.value))
    return f"{mean.x:.4f} {mean.y:.4f} {value:f} {tag}"


def write_weighted_means(
    means: Iterable[ZonalMean],
    path: str | Path,
    *,
    tag: str = DEFAULT_DATASET_TAG,
) -> int:
    """Write one line per zonal mean, in the given order.

    An empty ``means`` still produces an (empty) file, so every processed
    day leaves a trace.

    Returns:
        Number of lines written.

    Raises:
        ValueError: If ``tag`` is not a non-empty ASCII token without whitespace.
        ResultWriteError: If the file cannot be created or written.
    """
    if not tag or not tag.isascii() or any(ch.isspace() for ch in tag):
        msg = f"Dataset tag {tag!r} must be a non-empty ASCII token without whitespace"
        raise ValueError(msg)

    path = Path(path)
    lines = [format_line(m, tag) for m in means]
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="ascii", newline="\n") as fh:
            for line in lines:
                fh.write(line + "\n")
    except (OSError, UnicodeEncodeError) as exc:
        msg = f"Cannot write results to {path}: {exc}"
        raise ResultWriteError(msg, context=path.name) from exc

    logger.info("Results written | file=%s | lines=%d", path.name, len(lines))
    return len(lines)
