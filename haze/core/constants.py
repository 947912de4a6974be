"""Shared constants -- single source of truth.

Centralises tunables and string literals used by more than one stage.
"""

from __future__ import annotations

import sys

# ---------------------------------------------------------------------------
# Cell index
# ---------------------------------------------------------------------------

DEFAULT_TREE_NODE_CAPACITY: int = 100
"""Entries per STR tree node."""

# ---------------------------------------------------------------------------
# Bounding-box tolerance
# ---------------------------------------------------------------------------

RELATIVE_TOLERANCE: float = 128.0 * sys.float_info.epsilon
"""Relative epsilon for near-equality of box edges, scaled by magnitude."""

ABSOLUTE_TOLERANCE_FLOOR: float = sys.float_info.min
"""Smallest positive normal double; the tolerance never drops below it."""

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

DEFAULT_DATASET_TAG: str = "ERA"
"""Fixed source tag appended to every output line."""

DEFAULT_OUTPUT_PREFIX: str = "WVP_"
"""File-name prefix of per-day output files (``WVP_2020-01-31.txt``)."""

OUTPUT_SUFFIX: str = ".txt"

# ---------------------------------------------------------------------------
# Period selection
# ---------------------------------------------------------------------------

MIN_HOUR = 0
MAX_HOUR = 23
MIN_DAY = 1
MAX_DAY = 31

# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

KG_PER_SQM_TO_G_PER_SQCM: float = 0.1
"""1 kg/m^2 of water vapour equals 0.1 g/cm^2 (cm of precipitable water)."""
