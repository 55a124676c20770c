"""
Integration tests for the command-line tool.
"""

import json

import pytest

from api.cli import main
from hexroute.data.land_mask import load_land_mask

LAND = {
    "type": "FeatureCollection",
    "features": [{
        "type": "Feature",
        "properties": {},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[-110.0, 30.0], [-90.0, 30.0], [-90.0, 46.0], [-110.0, 46.0], [-110.0, 30.0]]],
        },
    }],
}


@pytest.fixture
def land_geojson(tmp_path):
    path = tmp_path / "land.geojson"
    path.write_text(json.dumps(LAND))
    return path


class TestBuildMask:
    """build-mask writes a mask the loader accepts."""

    def test_json_output(self, tmp_path, land_geojson, capsys):
        out = tmp_path / "land_r3.json"
        main(["build-mask", "--geojson", str(land_geojson), "--res", "3", "--out", str(out)])

        data = json.loads(out.read_text())
        assert data["resolution"] == 3
        assert data["cells"]
        assert "LAND MASK BUILT" in capsys.readouterr().out

    def test_bloom_output(self, tmp_path, land_geojson):
        out = tmp_path / "land_r3.bloom"
        main(["build-mask", "--geojson", str(land_geojson), "--res", "3", "--out", str(out)])

        mask = load_land_mask(str(out))
        assert mask.resolution == 3
        assert mask.kind == "BloomCellSet"

    def test_unsupported_output(self, tmp_path, land_geojson):
        with pytest.raises(SystemExit) as exc_info:
            main(["build-mask", "--geojson", str(land_geojson), "--res", "3", "--out", str(tmp_path / "x.csv")])
        assert exc_info.value.code == 1


class TestRouteCommand:
    """route prints a GeoJSON feature, or an error and a non-zero exit."""

    @pytest.fixture
    def mask_path(self, tmp_path, land_geojson):
        out = tmp_path / "land_r3.json"
        main(["build-mask", "--geojson", str(land_geojson), "--res", "3", "--out", str(out)])
        return str(out)

    def test_route_to_stdout(self, mask_path, capsys):
        capsys.readouterr()
        main([
            "route",
            "--waypoints", "[[-130.0, -30.0], [-120.0, -35.0]]",
            "--mask", mask_path,
            "--res", "3",
            "--tiers", "direct,fine",
        ])
        feature = json.loads(capsys.readouterr().out)
        assert feature["geometry"]["coordinates"][0] == [-130.0, -30.0]
        assert feature["properties"]["legs"][0]["tier"] == "direct"

    def test_waypoints_from_file(self, tmp_path, mask_path, capsys):
        trip = tmp_path / "trip.json"
        trip.write_text(json.dumps({"waypoints": [[-130.0, -30.0], [-120.0, -35.0]]}))
        capsys.readouterr()
        main(["route", "--waypoints", str(trip), "--mask", mask_path, "--res", "3"])
        assert json.loads(capsys.readouterr().out)["type"] == "Feature"

    def test_invalid_waypoints(self, mask_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["route", "--waypoints", "[[0.0, 0.0]]", "--mask", mask_path, "--res", "3"])
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err

    def test_no_command(self):
        with pytest.raises(SystemExit):
            main([])
