"""
Geospatial operations for the raster catalog.

This module contains:
- Raster metadata extraction (footprint, resolution, properties)
- Spatial predicates for catalog queries
- STAC document rendering
"""
