"""Command-line entry point for exporting and importing projects."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from .importer import import_archive
from .packager import Packager
from .persistence import load_document, write_document
from .settings import AssemblerSettings

logger = logging.getLogger(__name__)


def _export(args: argparse.Namespace, settings: AssemblerSettings) -> int:
    model = load_document(Path(args.document))
    packager = Packager(
        model,
        credits_text=settings.credits_text,
        include_project_config=args.include_project_config or settings.include_project_config,
    )
    result = asyncio.run(packager.build_archive(args.name))

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    archive_path = output_dir / result.filename
    archive_path.write_bytes(result.content)

    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(f"Wrote {len(result.entries)} entries to {archive_path.name} (sha256 {result.checksum})")
    return 0


def _import(args: argparse.Namespace, settings: AssemblerSettings) -> int:
    result = import_archive(
        Path(args.archive).read_bytes(),
        strict_mode=settings.strict_mode,
        project_name=args.name,
    )
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    write_document(result.model, output)

    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(f"Imported {len(result.model.scenes)} scene(s) into {output.name}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for the assembler."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = AssemblerSettings.from_env()
        return args.handler(args, settings)
    except Exception as exc:  # pragma: no cover - exercised via CLI errors
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="godotassembler",
        description="Export project documents to Godot archives and import them back.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser(
        "export", help="Package a JSON project document into a ZIP archive."
    )
    export_parser.add_argument("document", help="Path to the JSON project document.")
    export_parser.add_argument(
        "--output",
        required=True,
        help="Directory where the archive will be written.",
    )
    export_parser.add_argument(
        "--name",
        help="Project name used for the archive root. Defaults to the document's name.",
    )
    export_parser.add_argument(
        "--include-project-config",
        action="store_true",
        help="Also write project.godot into the archive.",
    )
    export_parser.set_defaults(handler=_export)

    import_parser = subparsers.add_parser(
        "import", help="Rebuild a JSON project document from an exported archive."
    )
    import_parser.add_argument("archive", help="Path to the ZIP archive.")
    import_parser.add_argument(
        "--output", required=True, help="File the JSON document will be written to."
    )
    import_parser.add_argument("--name", help="Override the imported project name.")
    import_parser.set_defaults(handler=_import)

    return parser


__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
