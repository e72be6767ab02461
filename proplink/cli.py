"""CLI entrypoints for proplink commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .errors import LinkError
from .linker import Linker
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root containing .proplink.yml (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proplink",
        description="Link property units into a single module.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write a debug-level log of the run to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Link all units and write the merged module.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the merged module here instead of the configured output.",
    )
    build_parser.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if the existing output is out of date; write nothing.",
    )

    order_parser = subparsers.add_parser(
        "order",
        help="Print units in dependency order and the external modules they use.",
    )
    _add_verbose_option(order_parser, suppress_default=True)
    _add_path_argument(order_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for proplink commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=args.quiet,
        log_file=Path(args.log_file) if args.log_file else None,
    )

    try:
        config = load_config(Path(args.path))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    linker = Linker(config)
    output = Path(args.output).resolve() if getattr(args, "output", None) else None

    if args.command == "build":
        try:
            if getattr(args, "check", False):
                if not linker.check(output):
                    parser.exit(1, "Merged module is out of date. Run `proplink build`.\n")
                print("Merged module is up to date")
                return
            written = linker.build(output)
        except (LinkError, ConfigError) as exc:
            parser.exit(1, f"proplink build failed: {exc}\n")
        except OSError as exc:
            parser.exit(1, f"proplink build failed: {exc}\nRun with --verbose for more details.\n")
        print(f"Merged module written to {_relativize(written)}")
    elif args.command == "order":
        try:
            order = linker.order()
        except (LinkError, OSError) as exc:
            parser.exit(1, f"proplink order failed: {exc}\n")
        for unit in order.units:
            print(unit.name)
        for path in order.externals:
            print(f"external: {_relativize(path)}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
