"""Processing stages.

Each module performs a single stage of the zonal statistics pipeline:
- read_raster: Decode a raster stack into a raw cube, geotransform, and CRS
- aggregate_bands: Average a band range of the raw cube into a grid
- grid_model / cell_index: Cell rectangles and the STR tree over them
- load_vectors: Read AOI polygons and reproject them to the raster CRS
- spatial_join: Candidate cells per AOI polygon
- zonal_statistics: Area-weighted mean and centroid per AOI polygon
- write_results: Per-day text output
"""
