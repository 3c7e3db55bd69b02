"""Command-line interface for pixel-grid."""

import argparse
import sys
from pathlib import Path

from .core import QUANTIZATION_METHODS, estimate, pixelate, quantize_image
from .quantize import DEFAULT_MAX_COLORS


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reduce images to a coarse, palette-limited color grid"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    down = subparsers.add_parser("downscale", help="Reduce an image to a color grid")
    down.add_argument("input", help="Input image path")
    down.add_argument("-o", "--output", help="Output image path (default: input_grid.png)")
    down.add_argument("-g", "--grid", type=_positive_int, help="Grid width in cells (default: estimated)")
    down.add_argument("-c", "--colors", type=_positive_int, default=DEFAULT_MAX_COLORS,
                      help=f"Number of palette colors (default: {DEFAULT_MAX_COLORS})")
    down.add_argument("--method", default=QUANTIZATION_METHODS[0],
                      help=f"Quantization method (default: {QUANTIZATION_METHODS[0]})")
    down.add_argument("--no-quantize", action="store_true", help="Keep cell medians, skip palette reduction")
    down.add_argument("--nearest", action="store_true", help="Nearest-neighbor resize instead of cell medians")
    down.add_argument("--preview", type=_positive_int, metavar="SCALE",
                      help="Also save a copy enlarged SCALE times for viewing")
    down.add_argument("-q", "--quiet", action="store_true", help="Suppress output")

    est = subparsers.add_parser("estimate", help="Print a suggested grid size")
    est.add_argument("input", help="Input image path")
    est.add_argument("-v", "--verbose", action="store_true", help="Show edge density")

    quant = subparsers.add_parser("quantize", help="Palette-reduce an image at full resolution")
    quant.add_argument("input", help="Input image path")
    quant.add_argument("-o", "--output", help="Output image path (default: input_quantized.png)")
    quant.add_argument("-c", "--colors", type=_positive_int, default=DEFAULT_MAX_COLORS,
                       help=f"Number of palette colors (default: {DEFAULT_MAX_COLORS})")
    quant.add_argument("-q", "--quiet", action="store_true", help="Suppress output")

    return parser


def run_downscale(args: argparse.Namespace) -> int:
    # Default output path
    if args.output is None:
        input_path = Path(args.input)
        args.output = input_path.parent / f"{input_path.stem}_grid.png"

    pixelate(
        args.input,
        args.output,
        grid_size=args.grid,
        color_quantization=not args.no_quantize,
        max_colors=args.colors,
        quantization_method=args.method,
        nearest=args.nearest,
        preview_scale=args.preview,
        verbose=not args.quiet,
    )
    return 0


def run_estimate(args: argparse.Namespace) -> int:
    print(estimate(args.input, verbose=args.verbose))
    return 0


def run_quantize(args: argparse.Namespace) -> int:
    if args.output is None:
        input_path = Path(args.input)
        args.output = input_path.parent / f"{input_path.stem}_quantized.png"

    result = quantize_image(args.input, max_colors=args.colors, verbose=not args.quiet)
    result.image.save(args.output)
    if not args.quiet:
        print(f"Saved to: {args.output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    commands = {
        "downscale": run_downscale,
        "estimate": run_estimate,
        "quantize": run_quantize,
    }
    try:
        return commands[args.command](args)
    except Exception as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
