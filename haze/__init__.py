"""Zonal statistics for gridded reanalysis rasters.

Reads hourly raster stacks (e.g. ERA5 total column water vapour), slices
them into daily periods, and computes an area-weighted mean value plus the
centroid for every area-of-interest polygon.  One text file is written per
day, one line per polygon.
"""

__version__ = "0.1.0"
