# qmodpack/__main__.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from qmodpack.core.errors import FileCreateFailed, ParseError, QmodError
from qmodpack.core.logging import configureLogging, setLogContext
from qmodpack.modjson.models import Manifest
from qmodpack.packages.derive import deriveManifest
from qmodpack.packages.types import ResolvedPackage
from qmodpack.qmod.packager import Qmod

logger = logging.getLogger("qmodpack")



def _buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qmodpack",
        description="Derive mod.json manifests from resolved packages and write qmod archives.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to settings logging.level.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail when a declared dependency was not restored by the resolver.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    derive = sub.add_parser("derive", help="Print or write the mod.json derived from resolver output.")
    derive.add_argument("resolved", type=Path, help="Resolved package file (JSON or JSON5).")
    derive.add_argument("-o", "--output", type=Path, default=None, help="Write mod.json here instead of stdout.")

    package = sub.add_parser("package", help="Write a qmod archive.")
    package.add_argument("source", type=Path, help="Resolved package file, or a mod.json with --manifest.")
    package.add_argument("destination", type=Path, help="Archive path to create.")
    package.add_argument(
        "--manifest",
        action="store_true",
        help="Treat SOURCE as an existing mod.json instead of resolver output.",
    )
    return parser



def _loadManifest(source: Path, *, isManifest: bool, strict: bool | None) -> Manifest:
    setLogContext(stage="parse")
    if isManifest:
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as err:
            raise ParseError(f"Cannot read '{source}'") from err
        return Manifest.deserialize(text)

    package = ResolvedPackage.load(source)
    setLogContext(modId=package.info.id, stage="derive")
    return deriveManifest(package, strict=strict)



def main(argv: list[str] | None = None) -> int:
    parser = _buildParser()
    args = parser.parse_args(argv)

    try:
        configureLogging(level=args.log_level)
    except (OSError, ValueError) as err:
        print(f"Invalid logging configuration: {err}", file=sys.stderr)
        return 2

    try:
        if args.command == "derive":
            manifest = _loadManifest(args.resolved, isManifest=False, strict=args.strict)
            setLogContext(stage="serialize")
            text = manifest.serialize()
            if args.output is None:
                sys.stdout.write(text + "\n")
            else:
                try:
                    args.output.write_text(text, encoding="utf-8")
                except OSError as err:
                    raise FileCreateFailed(f"Cannot write '{args.output}'") from err
                logger.info("Wrote %s", args.output)
            return 0

        manifest = _loadManifest(args.source, isManifest=args.manifest, strict=args.strict)
        setLogContext(modId=manifest.id, stage="io")
        Qmod(manifest).package(args.destination)
        return 0
    except QmodError as err:
        logger.error("%s failed: %s", err.stage, err)
        return 1



if __name__ == "__main__":
    sys.exit(main())
