"""Driving loop.

Runs the pipeline over every raster stack in the input directory:
1. Read raster -> derive daily/monthly identity from its name
2. Per day -> aggregate bands + index + join + zonal means
3. Write one result file per day -> collect a run summary
"""
