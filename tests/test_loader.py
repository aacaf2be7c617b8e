import asyncio

import numpy as np
import pytest

from cloud_studio.bounds import HeightBounds
from cloud_studio.colormap import colormap
from cloud_studio.errors import PointCloudError, UnsupportedFileTypeError
from cloud_studio.loader import (
    load_batch,
    parse_bytes,
    parse_file,
    recolor,
    select_clouds,
    source_kind_for,
)
from cloud_studio.records import SourceKind

PCD_TEXT = "# .PCD v0.7\nVERSION 0.7\nFIELDS x y z\nPOINTS 2\nDATA ascii\n0 0 -4\n1 1 2\n"


@pytest.fixture
def files(tmp_path):
    (tmp_path / "a.csv").write_text("0,0,1\n0,0,3\n")
    (tmp_path / "b.pcd").write_text(PCD_TEXT)
    (tmp_path / "bad.csv").write_text("x,y,z\n")
    (tmp_path / "c.CSV").write_text("0,0,10,255,255,255\n")
    (tmp_path / "notes.las").write_bytes(b"LASF")
    return tmp_path


def test_source_kind_by_extension():
    assert source_kind_for("a.csv") is SourceKind.DELIMITED
    assert source_kind_for("A.XYZ") is SourceKind.DELIMITED
    assert source_kind_for("scan.pcd") is SourceKind.PCD
    with pytest.raises(UnsupportedFileTypeError):
        source_kind_for("scan.ply")


def test_parse_bytes_handles_utf8_bom():
    record = parse_bytes("a.csv", "\ufeff1,2,3\n".encode("utf-8"))
    np.testing.assert_array_equal(record.positions, [1, 2, 3])


def test_parse_file(files):
    seen = []
    record = asyncio.run(parse_file(files / "b.pcd", on_bounds_update=lambda lo, hi: seen.append((lo, hi))))
    assert record.kind is SourceKind.PCD
    assert seen == [(-4.0, 2.0)]


def test_parse_missing_file(files):
    with pytest.raises(PointCloudError) as exc:
        asyncio.run(parse_file(files / "missing.csv"))
    assert exc.value.name == "missing.csv"


def test_batch_skips_failures_and_keeps_order(files):
    paths = [files / n for n in ["a.csv", "bad.csv", "b.pcd", "notes.las", "c.CSV"]]
    result = asyncio.run(load_batch(paths, "default"))

    assert [c.name for c in result.clouds] == ["a.csv", "b.pcd", "c.CSV"]
    assert [c.id for c in result.clouds] == ["0-a", "2-b", "4-c"]
    assert [f.name for f in result.failures] == ["bad.csv", "notes.las"]
    assert "unsupported" in result.failures[1].reason
    assert result.bounds == HeightBounds(-4, 10)


def test_batch_continues_past_out_of_range_coordinates(tmp_path):
    (tmp_path / "big.csv").write_text("1e39,0,0\n")
    (tmp_path / "ok.csv").write_text("1,2,3\n")
    result = asyncio.run(load_batch([tmp_path / "big.csv", tmp_path / "ok.csv"]))
    assert [c.name for c in result.clouds] == ["ok.csv"]
    assert [f.name for f in result.failures] == ["big.csv"]


def test_batch_widens_existing_bounds(files):
    result = asyncio.run(load_batch([files / "a.csv"], bounds=HeightBounds(-10, 10)))
    assert result.bounds == HeightBounds(-10, 10)


def test_batch_rejects_unknown_palette(files):
    with pytest.raises(ValueError):
        asyncio.run(load_batch([files / "a.csv"], "plasma"))


def test_color_sources(files):
    result = asyncio.run(load_batch([files / "a.csv", files / "b.pcd", files / "c.CSV"]))
    assert [c.color_source for c in result.clouds] == ["Z colormap", "constant gray", "file RGB"]


def test_recolor_only_touches_colormapped_delimited(files):
    result = asyncio.run(load_batch([files / "a.csv", files / "b.pcd", files / "c.CSV"]))
    csv_cloud, pcd_cloud, rgb_cloud = result.records

    recolored = recolor(csv_cloud, "elevation")
    np.testing.assert_array_equal(recolored.rgb, colormap([1, 3], "elevation"))
    np.testing.assert_array_equal(recolored.positions, csv_cloud.positions)
    assert recolor(pcd_cloud, "elevation") is pcd_cloud
    assert recolor(rgb_cloud, "elevation") is rgb_cloud


def test_select_clouds(files):
    result = asyncio.run(load_batch([files / "a.csv", files / "b.pcd"]))
    assert select_clouds(result.clouds) == result.clouds
    assert [c.name for c in select_clouds(result.clouds, ["1-b"])] == ["b.pcd"]
