"""Tests for document parsing and the frame loop."""

import json
from pathlib import Path

import pytest

from placerlab.document import (PatternDocument, PatternRunner, dump_document, load_document, loads_document,
                                parse_document)
from placerlab.symbols import SymbolTree
from placerlab.validation import ConfigError

from tests.helpers import box, leaf

PATTERNS = sorted((Path(__file__).parent.parent / "patterns").glob("*.json"))


def row(n=5, **settings):
    settings.setdefault("generation", "static")
    return parse_document(dict(settings, symbol={"type": "placer-x", "parameters": {"nSymbolsToCreate": n}}))


class TestParse:

    def test_full_document(self):
        doc = parse_document({
            "generation": "static",
            "speed": 250,
            "nSymbolsPerFrame": 7,
            "size": {"width": 640, "height": 480},
            "optimizeWithRaster": True,
            "seed": 11,
            "symbol": leaf("circle"),
        })
        assert doc == PatternDocument(symbol={"type": "circle", "parameters": {}}, generation="static", speed=250,
                                      n_symbols_per_frame=7, width=640, height=480, optimize_with_raster=True,
                                      seed=11)

    def test_defaults(self):
        doc = parse_document({})
        assert (doc.generation, doc.speed, doc.n_symbols_per_frame) == ("animation", 500, 100)
        assert (doc.width, doc.height) == (1000, 1000)
        assert doc.symbol["type"] == "placer-xyz"
        assert doc.seed is None

    def test_bare_symbol(self):
        doc = parse_document({"type": "quadtree", "parameters": {"maxDepth": 2}})
        assert doc.symbol == {"type": "quadtree", "parameters": {"maxDepth": 2}}
        assert doc.generation == "animation"

    @pytest.mark.parametrize("obj", [
        {"generation": "sometimes"},
        {"speed": -1},
        {"nSymbolsPerFrame": 0},
        {"nSymbolsPerFrame": 2.5},
        {"size": {"width": 0, "height": 10}},
        {"size": [100, 100]},
        {"optimizeWithRaster": "yes"},
        {"seed": "abc"},
        {"symbol": {"parameters": {}}},
        {"symbol": {"type": "rectangle", "parameters": []}},
        [],
    ])
    def test_invalid(self, obj):
        with pytest.raises(ConfigError):
            parse_document(obj)

    def test_malformed_json(self):
        with pytest.raises(ConfigError, match="malformed JSON"):
            loads_document('{"symbol": ')

    def test_to_json_round_trip(self):
        doc = parse_document({"generation": "static", "seed": 4, "size": {"width": 10, "height": 20}})
        obj = doc.to_json()
        assert obj["size"] == {"width": 10, "height": 20}
        assert obj["seed"] == 4
        assert parse_document(obj) == doc
        assert "seed" not in PatternDocument().to_json()

    def test_file_round_trip(self, tmp_path):
        doc = row(3, seed=9)
        path = tmp_path / "row.json"
        dump_document(doc, str(path))
        assert json.loads(path.read_text())["nSymbolsPerFrame"] == 100
        assert load_document(str(path)) == doc

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_document(str(tmp_path / "nope.json"))

    @pytest.mark.parametrize("path", PATTERNS, ids=lambda p: p.name)
    def test_shipped_patterns_build(self, path):
        doc = load_document(str(path))
        tree = SymbolTree.from_json(doc.symbol)
        assert len(tree) > 1


class TestRunner:

    def test_static_frames(self):
        runner = PatternRunner(row(5, nSymbolsPerFrame=2))
        assert [len(runner.frame(t)) for t in (0, 16, 32, 48)] == [2, 2, 1, 0]
        assert runner.finished
        assert runner.passes == 1
        assert runner.reset_at is None

    def test_animation_restarts_after_speed(self):
        runner = PatternRunner(row(3, generation="animation", speed=500, nSymbolsPerFrame=10))
        assert len(runner.frame(0)) == 3
        assert runner.reset_at == 500
        assert runner.frame(200) == []
        assert len(runner.frame(500)) == 3
        assert runner.passes == 2

    def test_run_pass(self):
        runner = PatternRunner(PatternDocument(seed=42))
        shapes = runner.run_pass()
        assert len(shapes) == 100
        assert runner.finished
        # margin with scale 0.2 insets every 100 x 100 cell by 10
        assert box(shapes[0]) == (10, 10, 80, 80)
        assert {s.fill.to_hex() for s in shapes} <= {"#ff0000", "#0000ff", "#008000", "#000000"}

    def test_seed_reproduces_pattern(self):
        def render():
            shapes = PatternRunner(PatternDocument(seed=42)).run_pass()
            return [(s.kind, box(s), s.fill) for s in shapes]
        assert render() == render()

    def test_run_pass_limit(self, caplog):
        runner = PatternRunner(row(50))
        with caplog.at_level("WARNING", logger="placerlab.document"):
            shapes = runner.run_pass(max_shapes=10)
        assert len(shapes) == 10
        assert not runner.finished
        assert "stopped after 10 calls" in caplog.text

    def test_apply_source(self):
        runner = PatternRunner(row(5))
        assert runner.apply_source(json.dumps({"generation": "static", "symbol": leaf("circle")}))
        assert runner.tree.root_node.type == "circle"
        assert len(runner.run_pass()) == 1

    @pytest.mark.parametrize("text", ['{"symbol": ', '{"symbol": {"type": "hexagon"}}', '{"speed": -3}'])
    def test_invalid_source_keeps_pattern(self, caplog, text):
        runner = PatternRunner(row(5))
        tree = runner.tree
        assert not runner.apply_source(text)
        assert runner.tree is tree
        assert "ignoring edited source" in caplog.text
        assert len(runner.run_pass()) == 5

    def test_change_root_type(self):
        runner = PatternRunner(row(5))
        runner.change_root_type("placer-y")
        assert runner.document.symbol["type"] == "placer-y"
        assert len(runner.run_pass()) == 1
        assert runner.to_document().symbol["type"] == "placer-y"

    def test_to_document_reflects_edits(self):
        runner = PatternRunner(row(5))
        runner.tree.root_node.set_parameter("nSymbolsToCreate", 2)
        assert runner.to_document().symbol["parameters"]["nSymbolsToCreate"] == 2
        assert runner.document.symbol["parameters"]["nSymbolsToCreate"] == 5
