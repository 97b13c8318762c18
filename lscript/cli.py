"""
lscript Command Line
====================
Run an L-system script and print what it produces.

Usage:
    lscript examples/koch.ls -n 3 --word
    lscript examples/plant.ls -n 5 --seed 7 --degrees --vertices
    lscript examples/tree.ls --thicken 0.02 --emit-origin
    lscript --commands
"""
import argparse
import logging
import os
import sys

from . import __version__
from .commands import describe_all
from .config import DEFAULT_SEED, EngineConfig
from .engine import LSystem
from .errors import LScriptError
from .geometry import thicken
from .grammar import format_number


def _print_records(buffer):
    for x, y, z, leaf in buffer:
        print(f"  {format_number(round(float(x), 6)):>12} "
              f"{format_number(round(float(y), 6)):>12} "
              f"{format_number(round(float(z), 6)):>12}  {'leaf' if leaf else ''}".rstrip())


def run_script(args: argparse.Namespace) -> int:
    """Compile, run and report one script. Returns the exit status."""
    if not os.path.exists(args.script):
        print(f"✘ File not found: {args.script}")
        return 1

    try:
        config = EngineConfig(
            iterations=args.iterations,
            seed=args.seed,
            angle_unit="degrees" if args.degrees else "radians",
            max_modules=args.max_modules,
            emit_origin=args.emit_origin,
        )
        system = LSystem.from_file(args.script, config)

        print(f"◬ ─── lsystem {system.name}: {config.iterations} generation(s), "
              f"seed {config.seed} ───")
        if args.rules:
            for production in system.grammar.productions:
                print(f"  {production}")
            print()

        result = system.run()
    except LScriptError as e:
        print(f"✘ {type(e).__name__}: {e}")
        return 1

    print(f"  Modules:  {len(result.word)}")
    print(f"  Vertices: {len(result.output.vertices)}")
    print(f"  Polygons: {len(result.output.polygons)}")

    if args.word:
        print()
        print(result.word_string)

    buffer = result.vertex_buffer()
    if args.vertices:
        print()
        print("  Vertex stream (x, y, z):")
        _print_records(buffer)

    if args.thicken is not None:
        try:
            triangles = thicken(buffer, args.thicken)
        except ValueError as e:
            print(f"✘ {e}")
            return 1
        print()
        print(f"  Thickened: {len(triangles) // 6} quad(s), {len(triangles)} triangle vertices")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lscript",
        description="Parametric, stochastic, context-sensitive L-system engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  lscript examples/koch.ls -n 3 --word\n"
            "  lscript examples/plant.ls -n 5 --seed 7 --degrees --vertices\n"
            "  lscript --commands\n"
        ),
    )
    parser.add_argument("script", nargs="?", help="Path to an .ls script")
    parser.add_argument("-n", "--iterations", type=int, default=1,
                        help="Number of generations (default: 1)")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED,
                        help=f"Random seed (default: {DEFAULT_SEED:#x})")
    parser.add_argument("--degrees", action="store_true",
                        help="Read command angles as degrees instead of radians")
    parser.add_argument("--max-modules", type=int, default=None,
                        help="Fail when a generation grows past this many modules")
    parser.add_argument("--word", action="store_true", help="Print the final word")
    parser.add_argument("--rules", action="store_true", help="Print the compiled productions")
    parser.add_argument("--vertices", action="store_true", help="Print the vertex stream")
    parser.add_argument("--thicken", type=float, default=None, metavar="T",
                        help="Run the thickening pass with thickness T and report its size")
    parser.add_argument("--emit-origin", action="store_true",
                        help="Start the vertex stream with the turtle's start position")
    parser.add_argument("--commands", action="store_true",
                        help="List the turtle commands and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.commands:
        print(describe_all())
        return 0

    if not args.script:
        parser.print_help()
        return 1

    return run_script(args)


if __name__ == "__main__":
    sys.exit(main())
