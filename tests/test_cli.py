"""Tests for the command line."""

import json

import pytest
from PIL import Image

from placerlab.cli import main


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "pattern.json"
    path.write_text(json.dumps({
        "generation": "static",
        "nSymbolsPerFrame": 4,
        "size": {"width": 60, "height": 40},
        "symbol": {
            "type": "grid",
            "parameters": {"width": 3, "height": 2, "symbol": {"type": "circle", "parameters": {}}},
        },
    }))
    return str(path)


class TestCommands:

    def test_types(self, capsys):
        assert main(["types"]) == 0
        out = capsys.readouterr().out
        assert "quadtree" in out
        assert "random-hue" in out

    def test_validate(self, config, capsys):
        assert main(["validate", config]) == 0
        assert "ok (4 symbols)" in capsys.readouterr().out

    def test_validate_normalize(self, config, capsys):
        assert main(["validate", config, "--normalize"]) == 0
        doc = json.loads(capsys.readouterr().out)
        assert doc["symbol"]["parameters"]["scale"] == 0.5
        assert doc["symbol"]["parameters"]["symbol"]["parameters"]["radius"] == 1

    def test_render(self, config, tmp_path):
        out = tmp_path / "out.png"
        assert main(["render", config, str(out), "--seed", "3", "--scale", "2"]) == 0
        with Image.open(out) as im:
            assert im.size == (120, 80)
            assert im.format == "PNG"

    def test_render_with_raster(self, config, tmp_path):
        raster = tmp_path / "raster.png"
        Image.new("RGB", (10, 10), "gray").save(raster)
        out = tmp_path / "out.png"
        assert main(["render", config, str(out), "--raster", str(raster)]) == 0
        assert out.exists()

    def test_animate(self, config, tmp_path):
        out = tmp_path / "out.gif"
        assert main(["animate", config, str(out), "--frames", "3", "--seed", "1"]) == 0
        with Image.open(out) as im:
            assert im.format == "GIF"
            assert im.size == (60, 40)


class TestErrors:

    def test_invalid_document(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"symbol": {"type": "hexagon"}}))
        assert main(["validate", str(path)]) == 2
        assert "Unknown symbol type" in capsys.readouterr().err

    def test_malformed_json(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{")
        assert main(["render", str(path), str(tmp_path / "out.png")]) == 2
        assert "error:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert main(["validate", str(tmp_path / "missing.json")]) == 2

    def test_no_command(self):
        with pytest.raises(SystemExit):
            main([])
