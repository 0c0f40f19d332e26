"""Raster catalog: STAC API over a directory or bucket of geospatial rasters."""
