"""Scoped GDAL/OGR environment.

rasterio and fiona each keep process-wide GDAL state (driver registry,
configuration options, error handlers).  ``HazeEnvironment`` owns that state
explicitly: it is entered once per run and passed by reference to every
stage that opens a dataset, instead of relying on implicit registration
order.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger("haze.core.environment")

#: GDAL options applied to every run unless overridden.
DEFAULT_GDAL_OPTIONS: dict[str, Any] = {
    # GRIB files carry hourly bands; avoid writing .aux.xml sidecars next to them.
    "GDAL_PAM_ENABLED": False,
}


class HazeEnvironment:
    """Context manager wrapping ``rasterio.Env`` and ``fiona.Env``.

    Usage::

        with HazeEnvironment() as env:
            dataset = read_raster(path, env)

    Attributes:
        options: GDAL configuration options active inside the environment.
    """

    def __init__(self, **options: Any) -> None:
        self.options: dict[str, Any] = {**DEFAULT_GDAL_OPTIONS, **options}
        self._stack: ExitStack | None = None

    @property
    def active(self) -> bool:
        """Whether the environment has been entered and not yet exited."""
        return self._stack is not None

    def __enter__(self) -> HazeEnvironment:
        import fiona
        import rasterio

        stack = ExitStack()
        try:
            stack.enter_context(rasterio.Env(**self.options))
            stack.enter_context(fiona.Env(**self.options))
        except BaseException:
            stack.close()
            raise
        self._stack = stack
        logger.debug("GDAL environment entered | options=%s", sorted(self.options))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._stack is not None:
            self._stack.close()
            self._stack = None
            logger.debug("GDAL environment exited")

    def require_active(self, stage: str) -> None:
        """Raise ``RuntimeError`` if a stage opens data outside the environment."""
        if not self.active:
            msg = f"{stage}: HazeEnvironment must be entered before opening datasets"
            raise RuntimeError(msg)
