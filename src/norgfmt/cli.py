"""Command-line interface for norgfmt."""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from norgfmt.errors import Diagnostic, LexError, ParseError, VerificationError
from norgfmt.options import DEFAULT_LINE_LENGTH, FormatOptions

logger = logging.getLogger(__name__)

CONFIG_NAME = "norgfmt.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options. input_file is None when reading stdin."""

    input_file: Path | None
    output_file: Path | None
    format: FormatOptions
    check: bool
    verify: bool
    debug: bool
    log_level: str

    @property
    def display_name(self) -> str:
        return str(self.input_file) if self.input_file is not None else "<stdin>"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="norgfmt",
        description="Canonicalizing formatter for Norg documents",
    )
    p.add_argument("input", help="Input .norg file ('-' reads stdin)")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "--line-length",
        type=int,
        default=None,
        metavar="N",
        help=f"Target line width (default: {DEFAULT_LINE_LENGTH})",
    )
    p.add_argument(
        "--check",
        action="store_true",
        help="Write nothing; exit 1 if the file is not already formatted",
    )
    p.add_argument(
        "--verify",
        action="store_true",
        help="Re-parse the output and fail if its meaning changed",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help=f"Config file (default: auto-discover {CONFIG_NAME})",
    )
    p.add_argument("--debug", action="store_true", help="Dump the parsed tree to stderr")
    p.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        type=str.upper,
        help="Logging verbosity (default: WARNING)",
    )
    return p


def configure_logging(level: str) -> logging.Logger:
    """Send norgfmt's log records to stderr at the given level."""
    resolved = getattr(logging, level.upper(), logging.WARNING)
    package_logger = logging.getLogger("norgfmt")
    package_logger.setLevel(resolved)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    package_logger.addHandler(handler)
    return package_logger


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file.

    An auto-discovered file that does not exist yields an empty dict; an
    explicitly named one that does not exist, or any file that is not valid
    TOML, is a usage error.
    """
    path = config_path if config_path is not None else input_dir / CONFIG_NAME

    if not path.is_file():
        if config_path is not None:
            raise argparse.ArgumentTypeError(f"config file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid config file {path}: {exc}") from exc

    logger.debug("loaded config from %s", path)
    return config


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: default < config file < CLI flags.
    """
    input_file = None if args.input == "-" else Path(args.input)
    input_dir = Path(".")
    if input_file is not None and input_file.parent.parts:
        input_dir = input_file.parent

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    line_length = DEFAULT_LINE_LENGTH
    cfg_format = config.get("format")
    if cfg_format is not None and not isinstance(cfg_format, dict):
        raise argparse.ArgumentTypeError("config: [format] must be a table")
    if isinstance(cfg_format, dict) and "line_length" in cfg_format:
        line_length = cfg_format["line_length"]
    if args.line_length is not None:
        line_length = args.line_length

    try:
        format_options = FormatOptions(line_length=line_length)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        format=format_options,
        check=args.check,
        verify=args.verify,
        debug=args.debug,
        log_level=args.log_level,
    )


def format_source(source: str, options: CliOptions) -> tuple[str, list[Diagnostic]]:
    """Parse, (optionally dump), render and (optionally) verify one document."""
    from norgfmt.debug import dump_ast
    from norgfmt.parser import parse
    from norgfmt.render import render_with_diagnostics
    from norgfmt.verify import verify_roundtrip

    filename = options.display_name
    doc = parse(source, filename)

    if options.debug:
        dump_ast(doc, file=sys.stderr)

    formatted, diagnostics = render_with_diagnostics(doc, options.format)

    if options.verify:
        verify_roundtrip(doc, formatted, filename)

    return formatted, diagnostics


def _read_source(options: CliOptions) -> str:
    if options.input_file is None:
        return sys.stdin.read()
    return options.input_file.read_text(encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    configure_logging(options.log_level)

    try:
        source = _read_source(options)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"error: cannot read {options.display_name}: {exc}", file=sys.stderr)
        return 2

    try:
        formatted, diagnostics = format_source(source, options)
    except (LexError, ParseError) as exc:
        print(exc.format(options.display_name), file=sys.stderr)
        return 1
    except VerificationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    for diag in diagnostics:
        start = diag.span.start
        logger.info("%s:%d:%d: %s [%s]", options.display_name, start.line, start.column, diag.message, diag.code)

    if options.check:
        if formatted != source:
            print(f"would reformat {options.display_name}", file=sys.stderr)
            return 1
        return 0

    if options.output_file:
        options.output_file.write_text(formatted, encoding="utf-8")
    else:
        sys.stdout.write(formatted)

    return 0


def console_main() -> None:
    """Console script wrapper around main()."""
    sys.exit(main())
