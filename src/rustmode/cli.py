"""Command-line interface for rustmode."""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

from rustmode.buffer import Buffer
from rustmode.config import Options, load_config, options_from_config
from rustmode.errors import FormatError
from rustmode.indent import indent_region
from rustmode.rustfmt import Formatter


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path | None
    in_place: bool
    format: bool
    check: bool
    debug: bool
    options: Options


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="rustmode",
        description="Reindent or rustfmt Rust source files",
    )
    p.add_argument("input", nargs="?", help="Input .rs file")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument("-i", "--in-place", action="store_true", help="Rewrite the input file")
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover rustmode.toml)",
    )
    p.add_argument(
        "--indent-offset",
        type=int,
        default=None,
        metavar="N",
        help="Columns per nesting level (default: 4)",
    )
    p.add_argument(
        "--method-chain",
        action="store_true",
        default=None,
        help="Align leading .method() lines on the previous dot",
    )
    p.add_argument(
        "--where-clause",
        action="store_true",
        default=None,
        help="Indent a 'where' line one level in",
    )
    p.add_argument("--rustfmt", metavar="PATH", help="rustfmt executable (default: rustfmt)")
    p.add_argument("--format", action="store_true", help="Format with rustfmt instead of reindenting")
    p.add_argument("--check", action="store_true", help="Print rustfmt's diff and exit 1 if it is not empty")
    p.add_argument("--debug", action="store_true", help="Dump literals, macro scopes and angles to stderr")
    p.add_argument("--lsp", action="store_true", help="Run the language server on stdio")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    return p


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    options = options_from_config(load_config(config_path, input_dir))

    overrides: dict[str, object] = {}
    if args.indent_offset is not None:
        if args.indent_offset < 0:
            raise argparse.ArgumentTypeError(f"invalid indent offset: {args.indent_offset}")
        overrides["indent_offset"] = args.indent_offset
    if args.method_chain is not None:
        overrides["indent_method_chain"] = args.method_chain
    if args.where_clause is not None:
        overrides["indent_where_clause"] = args.where_clause
    if args.rustfmt:
        overrides["rustfmt_bin"] = args.rustfmt
    if overrides:
        options = replace(options, **overrides)

    if args.in_place and args.output:
        raise argparse.ArgumentTypeError("--in-place and --output are mutually exclusive")

    return CliOptions(
        input_file=input_file,
        output_file=Path(args.output) if args.output else None,
        in_place=args.in_place,
        format=args.format,
        check=args.check,
        debug=args.debug,
        options=options,
    )


def process_file(options: CliOptions) -> str:
    """Reindent or rustfmt a file and return the new text."""
    from rustmode.debug import dump_analysis

    source = options.input_file.read_text(encoding="utf-8")
    buffer = Buffer(source)
    filename = str(options.input_file)

    if options.format:
        result, _ = Formatter.from_options(options.options).format_buffer(buffer, 0, filename)
        if result.partial:
            print(result.diagnostics, file=sys.stderr, end="")
    else:
        indent_region(buffer, 0, buffer.line_count - 1, options.options)

    if options.debug:
        dump_analysis(buffer, options.options)

    return buffer.text


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.lsp:
        from rustmode.lsp import main as lsp_main

        lsp_main()
        return 0

    if args.input is None:
        print("error: an input file is required", file=sys.stderr)
        return 2

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except tomllib.TOMLDecodeError as exc:
        print(f"error: invalid config: {exc}", file=sys.stderr)
        return 2

    if options.check:
        try:
            source = options.input_file.read_text(encoding="utf-8")
            diff = Formatter.from_options(options.options).diff_source(source, str(options.input_file))
        except OSError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        except FormatError as exc:
            print(exc.format(), file=sys.stderr)
            return 1
        sys.stdout.write(diff)
        return 1 if diff else 0

    try:
        text = process_file(options)
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except FormatError as exc:
        print(exc.format(), file=sys.stderr)
        return 1

    if options.in_place:
        options.input_file.write_text(text, encoding="utf-8")
    elif options.output_file:
        options.output_file.write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text)

    return 0
