"""Command-line interface for aksara-draw render/parse workflows."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .engine import AksaraDraw
from .model import DIRECTIONS, AksaraDrawError, Diagram, RenderOptions, normalize_direction
from .parser import TYPE_HINTS
from .resources import load_cheatsheet

SUBCOMMANDS_HINT = "Use one of: render, parse, cheatsheet."


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", nargs="?", help="Input diagram file")
    parser.add_argument("--text", help="Raw diagram source")
    parser.add_argument(
        "--type",
        dest="type_hint",
        choices=sorted(TYPE_HINTS),
        help="Input syntax (auto-detected when omitted)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="aksara-draw",
        description="Lay out hierarchy, flow or JSON diagrams and render them to SVG or PNG.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    render_parser = subparsers.add_parser("render", help="Render a diagram to SVG (or PNG)")
    _add_input_arguments(render_parser)
    render_parser.add_argument("--layout", help="Layout algorithm: tree, grid or tree-list")
    render_parser.add_argument("--direction", type=str.upper, help="Tree direction: TB, BT, LR or RL")
    render_parser.add_argument("--png", action="store_true", help="Write PNG instead of SVG")
    render_parser.add_argument("--scale", type=float, default=1.0, help="PNG scale factor")
    render_parser.add_argument("--width", type=float, help="Output width")
    render_parser.add_argument("--height", type=float, help="Output height")
    render_parser.add_argument("--background", help="Background color")
    render_parser.add_argument("--theme", help="Theme name recorded on the SVG root")
    render_parser.add_argument("--stdout", action="store_true", help="Write output to stdout")
    render_parser.add_argument("-o", "--output", help="Output path")

    parse_parser = subparsers.add_parser("parse", help="Print the parsed diagram as JSON")
    _add_input_arguments(parse_parser)

    subparsers.add_parser("cheatsheet", help="Print the input syntax reference")

    return parser


def _read_input(path: Optional[str], text: Optional[str]) -> tuple[str, str, Optional[Path]]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>", None

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(encoding="utf-8"), str(input_path), input_path
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Use a subcommand with FILE, --text, or pipe stdin.",
            exit_code=2,
        )

    data = sys.stdin.read()
    if not data.strip():
        raise CliError(
            "E_ARGS",
            "stdin was empty",
            hint="Pipe hierarchy, flow or JSON diagram text into stdin.",
            exit_code=2,
        )
    return data, "<stdin>", None


def _write_output(path: Path, content: bytes) -> None:
    try:
        path.write_bytes(content)
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, AksaraDrawError):
        if exc.code.startswith("E_PARSE"):
            return CliError(
                exc.code,
                exc.message,
                hint="Run `aksara-draw cheatsheet` for the accepted syntaxes.",
                exit_code=2,
            )
        return CliError(
            exc.code,
            exc.message,
            hint="Check custom shapes and render options.",
            exit_code=3,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _load_diagram(engine: AksaraDraw, args: argparse.Namespace) -> tuple[Diagram, Optional[Path]]:
    source, _source_name, source_path = _read_input(args.input, args.text)
    return engine.parse(source, args.type_hint), source_path


def _handle_render(args: argparse.Namespace) -> int:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )
    if args.scale <= 0:
        raise CliError(
            "E_ARGS",
            "--scale must be > 0",
            hint="Use a positive scale factor like 1 or 2.",
            exit_code=2,
        )
    if args.direction is not None and normalize_direction(args.direction, None) is None:
        raise CliError(
            "E_ARGS",
            f"unknown direction: {args.direction}",
            hint=f"Use one of: {', '.join(sorted(DIRECTIONS))}.",
            exit_code=2,
        )

    engine = AksaraDraw()
    diagram, source_path = _load_diagram(engine, args)
    if args.layout:
        diagram.layout.algorithm = args.layout
    if args.direction:
        diagram.layout.direction = normalize_direction(args.direction)
    options = RenderOptions(
        width=args.width, height=args.height, background=args.background, theme=args.theme
    )

    to_stdout = args.stdout or (source_path is None and not args.output)
    if args.png:
        content = engine.render_png(diagram, options, scale=args.scale)
        suffix = ".png"
        if to_stdout:
            sys.stdout.buffer.write(content)
            return 0
    else:
        svg_text = engine.render(diagram, options)
        if not svg_text.endswith("\n"):
            svg_text += "\n"
        suffix = ".svg"
        if to_stdout:
            sys.stdout.write(svg_text)
            return 0
        content = svg_text.encode("utf-8")

    output_path = Path(args.output) if args.output else source_path.with_suffix(suffix)
    _write_output(output_path, content)
    print(f"Wrote {output_path}")
    return 0


def _handle_parse(args: argparse.Namespace) -> int:
    diagram, _source_path = _load_diagram(AksaraDraw(), args)
    print(diagram.to_json())
    return 0


def _configure_logging(debug_enabled: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug_enabled else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError("E_ARGS", "missing subcommand", hint=SUBCOMMANDS_HINT, exit_code=2)
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("AKSARA_DRAW_DEBUG") == "1"
    _configure_logging(debug_enabled)
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "render":
            return _handle_render(args)
        if args.command == "parse":
            return _handle_parse(args)
        if args.command == "cheatsheet":
            print(load_cheatsheet())
            return 0

        raise CliError("E_ARGS", "missing subcommand", hint=SUBCOMMANDS_HINT, exit_code=2)
    except UsageError as exc:
        err = CliError("E_ARGS", str(exc), hint=SUBCOMMANDS_HINT, exit_code=2)
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
