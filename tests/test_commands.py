import cyclopts
import pytest

from cloud_studio.commands.export import export
from cloud_studio.commands.inspect import inspect


@pytest.fixture
def inputs(tmp_path):
    a = tmp_path / "a.csv"
    a.write_text("0,0,0,255,0,0\n1,1,1,0,255,0\n2,2,2,0,0,255\n")
    b = tmp_path / "b.pcd"
    b.write_text("# .PCD v0.7\nVERSION 0.7\nFIELDS x y z\nPOINTS 1\nDATA ascii\n5 5 5\n")
    bad = tmp_path / "bad.csv"
    bad.write_text("not,a,cloud\n")
    return a, b, bad


def test_inspect_reports_files_and_failures(inputs, capsys):
    inspect(list(inputs))
    out = capsys.readouterr().out
    assert "a.csv (DELIMITED)" in out
    assert "Points: 3" in out
    assert "Failed to load bad.csv" in out
    assert "Height bounds: [0.00, 5.00]" in out


def test_inspect_missing_file(tmp_path):
    with pytest.raises(cyclopts.ValidationError):
        inspect([tmp_path / "nope.csv"])


def test_inspect_nothing_loadable(inputs):
    _, _, bad = inputs
    with pytest.raises(cyclopts.ValidationError):
        inspect([bad])


def test_export_all(inputs, tmp_path):
    a, b, _ = inputs
    out = tmp_path / "out.csv"
    export([a, b], output=out)
    assert out.read_text().splitlines() == [
        "X,Y,Z,R,G,B",
        "0,0,0,255,0,0",
        "1,1,1,0,255,0",
        "2,2,2,0,0,255",
        "5,5,5,178,178,178",
    ]


def test_export_selected_height_band_with_transform(inputs, tmp_path):
    a, b, _ = inputs
    out = tmp_path / "out.csv"
    export(
        [a, b],
        output=out,
        select=["0-a"],
        min_height=0.5,
        translate=(0.0, 0.0, 10.0),
    )
    assert out.read_text().splitlines() == [
        "X,Y,Z,R,G,B",
        "1,1,11,0,255,0",
        "2,2,12,0,0,255",
    ]


def test_export_empty_height_band(inputs, tmp_path):
    a, _, _ = inputs
    with pytest.raises(cyclopts.ValidationError):
        export([a], output=tmp_path / "out.csv", min_height=50, max_height=60)


def test_export_single_edge_is_pinned_to_session_bounds(inputs, tmp_path):
    a, _, _ = inputs
    out = tmp_path / "out.csv"
    export([a], output=out, max_height=-5)
    assert out.read_text().splitlines() == ["X,Y,Z,R,G,B", "0,0,0,255,0,0"]


def test_export_rejects_inverted_range(inputs, tmp_path):
    a, _, _ = inputs
    with pytest.raises(cyclopts.ValidationError):
        export([a], output=tmp_path / "out.csv", min_height=2, max_height=1)
