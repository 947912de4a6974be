"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants shared across stages
- environment: Scoped GDAL/OGR environment
- exceptions: Custom exception hierarchy
- logging: Logger setup for script use
"""
