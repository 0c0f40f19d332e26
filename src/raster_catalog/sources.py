"""Source enumerators listing candidate raster files.

Each source is a restartable iterable of `SourceEntry` in lexical order.
"""

import os
from collections.abc import Iterator
from pathlib import Path, PurePosixPath
from typing import Any

from raster_catalog.connectors.s3_client import S3Resource
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.models.models import SourceEntry


class DirectorySource:
    """Files under a directory tree, grouped by their parent directory.

    Files directly under the root have no grouping path.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def __iter__(self) -> Iterator[SourceEntry]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            relative = Path(dirpath).relative_to(self.root).as_posix()
            grouping_path = "" if relative == "." else relative
            for filename in sorted(filenames):
                yield SourceEntry(str(Path(dirpath) / filename), grouping_path)

    def __repr__(self) -> str:
        return f"DirectorySource({str(self.root)!r})"


class S3Source:
    """Objects under a bucket prefix, grouped by their parent prefix.

    Objects with no parent prefix below `prefix` have no grouping path.
    """

    def __init__(self, s3_client: Any, bucket: str, prefix: str = "") -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def _keys(self) -> list[str]:
        list_prefix = f"{self.prefix}/" if self.prefix else ""
        paginator = self.s3_client.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=list_prefix):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                if not key.endswith("/"):
                    keys.append(key)
        return sorted(keys)

    def __iter__(self) -> Iterator[SourceEntry]:
        for key in self._keys():
            relative = PurePosixPath(key[len(self.prefix) + 1 :] if self.prefix else key)
            grouping_path = "" if str(relative.parent) == "." else str(relative.parent)
            yield SourceEntry(f"s3://{self.bucket}/{key}", grouping_path)

    def __repr__(self) -> str:
        return f"S3Source(s3://{self.bucket}/{self.prefix})"


def build_source(settings: SettingsResource, s3: S3Resource | None = None) -> DirectorySource | S3Source:
    """Create the source selected by settings.

    :param settings: Settings resource
    :param s3: S3 resource, required for bucket sources
    :returns: Source enumerator
    """
    if settings.catalog_source == "s3":
        if not settings.aws_s3_bucket_name:
            raise ValueError("AWS_S3_BUCKET_NAME is required for an s3 catalog source")
        s3 = s3 or S3Resource(settings=settings)
        return S3Source(s3.get_client(), settings.aws_s3_bucket_name, settings.aws_s3_prefix)
    return DirectorySource(settings.catalog_dir)
