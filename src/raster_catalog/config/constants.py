"""Constants for catalog sources, STAC rendering and configuration defaults."""

DEFAULT_CATALOG_SOURCE = "directory"
DEFAULT_CATALOG_DIR = "./data"
DEFAULT_CATALOG_BACKEND = "memory"
DEFAULT_CATALOG_SNAPSHOT_PATH = "./catalog/catalog.parquet"
DEFAULT_INGEST_WORKERS = 1

DEFAULT_SERVICE_ID = "autostac"
DEFAULT_SERVICE_TITLE = "Autostac Demo"
DEFAULT_SERVICE_DESCRIPTION = "An automatic STAC API from a directory or S3 bucket"
DEFAULT_BASE_URL = "http://localhost:8000/"

CATALOG_SOURCES = ("directory", "s3")
CATALOG_BACKENDS = ("memory", "geoparquet")

CATALOG_CRS = "EPSG:4326"
POLYGONAL_GEOMETRY_TYPES = ("Polygon", "MultiPolygon")

SORTABLE_PROPERTIES = ("spatial_resolution",)

# GDAL metadata keys; CLOUD_COVERAGE_ASSESSMENT and PRODUCT_START_TIME are Sentinel-2 keys.
METADATA_CLOUD_COVERAGE_KEY = "CLOUD_COVERAGE_ASSESSMENT"
METADATA_TIMESTAMP_KEY = "PRODUCT_START_TIME"
METADATA_DESCRIPTION_KEY = "TIFFTAG_IMAGEDESCRIPTION"

STAC_VERSION = "1.0.0"
STAC_CORE_CONFORMANCE = "https://api.stacspec.org/v1.0.0-beta.2/core"
STAC_MEDIA_TYPE_JSON = "application/json"
STAC_MEDIA_TYPE_GEOJSON = "application/geo+json"
