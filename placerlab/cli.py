"""
cli.py
======

Command line
------------
$ placerlab render patterns/grid.json /tmp/grid.png --seed 7
$ placerlab animate patterns/quadtree.json /tmp/quadtree.gif --frames 40
$ placerlab validate patterns/noise-grid.json
$ placerlab types

Exit status is 0 on success and 2 when the document cannot be read or is
invalid.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from PIL import Image

from .document import PatternDocument, PatternRunner, load_document
from .effects import EFFECTS
from .render import Canvas, raster_sampler
from .symbols import SymbolTree, rng_from_seed, symbol_names
from .validation import ConfigError

logger = logging.getLogger(__name__)


def load(path: str, seed: Optional[int]) -> PatternDocument:
    doc = load_document(path)
    if seed is not None:
        doc.seed = seed
    return doc


def make_runner(doc: PatternDocument, raster: Optional[str]) -> PatternRunner:
    sampler = None
    if raster:
        with Image.open(raster) as im:
            sampler = raster_sampler(im, doc.width, doc.height)
    return PatternRunner(doc, raster_sampler=sampler)


def cmd_render(args: argparse.Namespace) -> int:
    doc = load(args.config, args.seed)
    runner = make_runner(doc, args.raster)
    canvas = Canvas(doc.width, doc.height, background=args.bg, scale=args.scale,
                    optimize_with_raster=doc.optimize_with_raster)
    shapes = runner.run_pass(args.max_shapes)
    canvas.add(shapes)
    canvas.image().save(args.out, format="PNG", optimize=True)
    print(args.out)
    return 0


def cmd_animate(args: argparse.Namespace) -> int:
    doc = load(args.config, args.seed)
    runner = make_runner(doc, args.raster)
    canvas = Canvas(doc.width, doc.height, background=args.bg, scale=args.scale,
                    optimize_with_raster=True)
    frames: List[Image.Image] = []
    now = 0.0
    for _ in range(args.frames):
        if runner.reset_at is not None and now >= runner.reset_at:
            canvas.clear()
        canvas.add(runner.frame(now))
        frames.append(canvas.image())
        now += args.frame_ms
    if not frames:
        frames.append(canvas.image())
    frames[0].save(args.out, format="GIF", save_all=True, append_images=frames[1:],
                   duration=int(args.frame_ms), loop=0)
    logger.info("wrote %d frames", len(frames))
    print(args.out)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    doc = load(args.config, None)
    tree = SymbolTree.from_json(doc.symbol, rng_from_seed(doc.seed))
    if args.normalize:
        doc.symbol = tree.get_json()
        print(json.dumps(doc.to_json(), indent=2))
    else:
        print(f"{args.config}: ok ({len(tree)} symbols)")
    return 0


def cmd_types(args: argparse.Namespace) -> int:
    print("symbols: " + ", ".join(symbol_names()))
    print("effects: " + ", ".join(sorted(EFFECTS)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="placerlab", description="Generate patterns from recursive symbol documents")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logs")
    sub = ap.add_subparsers(dest="command", required=True)

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("config", help="Pattern document (JSON)")
        p.add_argument("out", help="Output path")
        p.add_argument("--seed", type=int, default=None)
        p.add_argument("--raster", default=None, help="Image sampled by the raster-scale effect")
        p.add_argument("--bg", default="white", help="Background color")
        p.add_argument("--scale", type=float, default=1.0, help="Pixels per document unit")

    p = sub.add_parser("render", help="Render one full pass to PNG")
    common(p)
    p.add_argument("--max-shapes", type=int, default=None, help="Stop after this many calls")
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("animate", help="Record the frame loop to an animated GIF")
    common(p)
    p.add_argument("--frames", type=int, default=60)
    p.add_argument("--frame-ms", type=float, default=1000 / 30)
    p.set_defaults(func=cmd_animate)

    p = sub.add_parser("validate", help="Check that a document builds")
    p.add_argument("config")
    p.add_argument("--normalize", action="store_true", help="Print the document with defaults filled in")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("types", help="List symbol and effect types")
    p.set_defaults(func=cmd_types)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except (ConfigError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
