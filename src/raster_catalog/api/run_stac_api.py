#!/usr/bin/env python3
"""Run the STAC API server."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "raster_catalog.api.stac_api:build_app_from_env",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()
