from pathlib import Path
from types import SimpleNamespace

import pytest

from raster_catalog.models.models import SourceEntry
from raster_catalog.sources import DirectorySource, S3Source, build_source


class FakePaginator:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def paginate(self, Bucket, Prefix):
        self.calls.append((Bucket, Prefix))
        for page in self.pages:
            yield {"Contents": [{"Key": key} for key in page if key.startswith(Prefix)]}


class FakeS3Client:
    def __init__(self, pages):
        self.paginator = FakePaginator(pages)

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return self.paginator


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")


def test_directory_source_groups_by_parent_in_lexical_order(tmp_path: Path) -> None:
    """
    Test that files are listed in lexical order with their parent as grouping path.
    """
    _touch(tmp_path / "orphan.tif")
    _touch(tmp_path / "imagery" / "b.tif")
    _touch(tmp_path / "imagery" / "a.tif")
    _touch(tmp_path / "dem" / "z.tif")
    (tmp_path / "empty").mkdir()

    entries = list(DirectorySource(tmp_path))

    assert entries == [
        SourceEntry(str(tmp_path / "orphan.tif"), ""),
        SourceEntry(str(tmp_path / "dem" / "z.tif"), "dem"),
        SourceEntry(str(tmp_path / "imagery" / "a.tif"), "imagery"),
        SourceEntry(str(tmp_path / "imagery" / "b.tif"), "imagery"),
    ]


def test_directory_source_is_restartable(tmp_path: Path) -> None:
    _touch(tmp_path / "imagery" / "a.tif")
    source = DirectorySource(tmp_path)
    assert list(source) == list(source)


def test_directory_source_keeps_nested_grouping_path(tmp_path: Path) -> None:
    _touch(tmp_path / "region" / "imagery" / "a.tif")
    entries = list(DirectorySource(tmp_path))
    assert entries == [SourceEntry(str(tmp_path / "region" / "imagery" / "a.tif"), "region/imagery")]


def test_s3_source_lists_all_pages_relative_to_prefix() -> None:
    """
    Test that objects from every page are sorted, folder markers dropped and grouped below the prefix.
    """
    client = FakeS3Client(
        pages=[
            ["rasters/imagery/b.tif", "rasters/imagery/", "rasters/top.tif"],
            ["rasters/dem/z.tif", "other/imagery/x.tif", "rasters/imagery/a.tif"],
        ]
    )

    entries = list(S3Source(client, "bucket", prefix="/rasters/"))

    assert client.paginator.calls == [("bucket", "rasters/")]
    assert entries == [
        SourceEntry("s3://bucket/rasters/dem/z.tif", "dem"),
        SourceEntry("s3://bucket/rasters/imagery/a.tif", "imagery"),
        SourceEntry("s3://bucket/rasters/imagery/b.tif", "imagery"),
        SourceEntry("s3://bucket/rasters/top.tif", ""),
    ]


def test_s3_source_without_prefix() -> None:
    client = FakeS3Client(pages=[["imagery/a.tif", "root.tif"]])
    entries = list(S3Source(client, "bucket"))
    assert entries == [SourceEntry("s3://bucket/imagery/a.tif", "imagery"), SourceEntry("s3://bucket/root.tif", "")]


def test_build_source_selects_directory_or_s3(tmp_path: Path) -> None:
    directory = build_source(SimpleNamespace(catalog_source="directory", catalog_dir=str(tmp_path)))
    assert isinstance(directory, DirectorySource)
    assert directory.root == tmp_path

    s3 = SimpleNamespace(get_client=lambda: FakeS3Client(pages=[]))
    settings = SimpleNamespace(catalog_source="s3", aws_s3_bucket_name="bucket", aws_s3_prefix="rasters")
    bucket = build_source(settings, s3)
    assert isinstance(bucket, S3Source)
    assert bucket.prefix == "rasters"


def test_build_source_requires_bucket_for_s3() -> None:
    settings = SimpleNamespace(catalog_source="s3", aws_s3_bucket_name=None, aws_s3_prefix="")
    with pytest.raises(ValueError):
        build_source(settings)
