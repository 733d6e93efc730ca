"""Command-line interface for converting SAS topology snapshots."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .document import HTML_FILE
from .errors import AssetError, CycleDetectedError, MalformedInputError, TopologyError, VertexLookupError
from .sastopo2svg import Config, run


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="sastopo2svg",
        description="Render a SAS topology digraph XML snapshot as an SVG diagram.",
    )
    parser.add_argument("input", help="Topology digraph XML file")
    parser.add_argument("-o", "--output-dir", required=True, help="Directory for sastopo.svg and sastopo2svg.html")
    parser.add_argument("--asset-dir", help="Directory holding icons/<kind>.png to copy instead of the default icons")
    parser.add_argument(
        "--dedupe-layers",
        action="store_true",
        help="Place a vertex reachable over several equal-depth paths only once per column",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")
    return parser


def _check_input(path: str) -> Path:
    input_path = Path(path)
    if not input_path.exists():
        raise CliError(
            "E_IO_READ",
            f"input file not found: {input_path}",
            exit_code=2,
            file=str(input_path),
        )
    return input_path


def _config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        outdir=Path(args.output_dir),
        xml_path=_check_input(args.input),
        asset_dir=Path(args.asset_dir) if args.asset_dir else None,
        dedupe_layers=args.dedupe_layers,
    )


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, ET.ParseError):
        line, column = getattr(exc, "position", (None, None))
        return CliError(
            "E_PARSE_XML",
            f"failed to parse XML: {exc}",
            hint="Ensure the snapshot is well-formed topo digraph XML.",
            exit_code=2,
            line=line,
            column=column,
        )
    if isinstance(exc, UnicodeError):
        return CliError(
            "E_PARSE_XML",
            f"failed to decode XML: {exc}",
            hint="Check the encoding named in the XML declaration.",
            exit_code=2,
        )
    if isinstance(exc, MalformedInputError):
        return CliError(
            exc.code,
            str(exc),
            hint="The snapshot does not follow the topo digraph schema.",
            exit_code=3,
        )
    if isinstance(exc, VertexLookupError):
        return CliError(
            exc.code,
            str(exc),
            hint="Every outgoing edge must name a vertex present in the snapshot.",
            exit_code=3,
        )
    if isinstance(exc, CycleDetectedError):
        return CliError(
            exc.code,
            str(exc),
            hint="SAS topologies are expected to be acyclic from each initiator.",
            exit_code=3,
        )
    if isinstance(exc, AssetError):
        return CliError(exc.code, str(exc), hint="Check --asset-dir contents.", exit_code=4)
    if isinstance(exc, TopologyError):
        return CliError(exc.code, str(exc), exit_code=3)
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "line": err.line,
            "column": err.column,
            "hint": err.hint,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _handle_convert(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    try:
        run(config)
    except OSError as exc:
        # The input is the only file read; anything else failed while writing.
        if exc.filename is not None and Path(exc.filename) == config.xml_path:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {config.xml_path}",
                hint=str(exc),
                exit_code=2,
                file=str(config.xml_path),
            )
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output files to: {config.outdir}",
            hint=str(exc),
            exit_code=4,
            file=str(config.outdir),
        )
    print(f"Wrote {config.outdir / HTML_FILE}")
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing input file",
            hint="Usage: sastopo2svg -o OUTDIR TOPOLOGY.xml",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("SASTOPO2SVG_DEBUG") == "1"
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format
        _configure_logging(debug_enabled)
        return _handle_convert(args)
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint="Usage: sastopo2svg -o OUTDIR TOPOLOGY.xml",
            exit_code=2,
        )
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
