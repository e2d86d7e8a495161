#!/usr/bin/env python
"""
CLI for lazypipe configuration documents
Usage: lazypipe run config/pipeline.toml
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from lazypipe.common.logger import LogFormat, get_logger, init_logger
from lazypipe.common.utils import dump_yaml, safe_mkdir
from lazypipe.config import Config


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazypipe",
        description="Load, transform and export tabular data described by a configuration document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lazypipe run config/pipeline.toml
  lazypipe --log-level dev --dotenv .env.prod run config/pipeline.yaml
  lazypipe dump-schema schema/lazypipe.schema.json
  lazypipe infer-schema config/pipeline.toml --pin --output config/pinned.yaml
        """
    )
    parser.add_argument(
        "--dotenv",
        help="Path to .env file to load (default: nearest .env, if any)"
    )
    parser.add_argument(
        "--log-level",
        choices=["user", "dev", "debug"],
        default="user",
        help="Logging verbosity: user (clean), dev (detailed), debug (very verbose)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output logs in JSON-Lines format"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Load and run the configuration at the given path")
    run.add_argument("config", type=Path, help="Configuration document (.toml, .yaml, .yml, .json)")

    dump = sub.add_parser("dump-schema", help="Write the JSON schema of the configuration format")
    dump.add_argument("path", type=Path, help="Where to write the JSON schema")

    infer = sub.add_parser("infer-schema", help="Print the datatypes the configuration produces")
    infer.add_argument("config", type=Path, help="Configuration document")
    infer.add_argument("--output", type=Path, help="Write to this file instead of stdout")
    infer.add_argument(
        "--pin",
        action="store_true",
        help="Emit the whole document with the source schema pinned to the inferred datatypes"
    )
    return parser


def _write_or_print(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    safe_mkdir(output.parent)
    output.write_text(text, encoding="utf-8")


def _log_error_chain(exc: BaseException) -> None:
    log = get_logger()
    log.error(str(exc))
    cause = exc.__cause__
    while cause is not None:
        log.error(f"  caused by: {cause}")
        cause = cause.__cause__


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    # Initialize logger
    log_format = LogFormat.JSON if args.json else LogFormat.TEXT
    init_logger(args.log_level, log_format)
    log = get_logger()

    # Load environment
    load_dotenv(args.dotenv) if args.dotenv else load_dotenv(find_dotenv(usecwd=True))

    try:
        if args.command == "run":
            written = Config.from_path(args.config).run()
            log.dev(f"{len(written)} file(s) written")
        elif args.command == "dump-schema":
            safe_mkdir(args.path.parent)
            args.path.write_text(json.dumps(Config.json_schema(), indent=2) + "\n", encoding="utf-8")
            log.success(f"JSON schema written: {args.path}")
        elif args.command == "infer-schema":
            config = Config.from_path(args.config)
            if args.pin:
                document = config.with_pinned_schema().to_document()
            else:
                document = config.infer_schema()
            _write_or_print(dump_yaml(document), args.output)
    except Exception as exc:
        _log_error_chain(exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
