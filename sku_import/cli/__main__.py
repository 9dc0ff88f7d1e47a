from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import ConfigError, ImportConfig, load_config, resolve_config_path
from ..logging.init import log_summary, setup_logging
from ..models.column_role import role_label
from ..services.errors import ImportEngineError, LargeFileDeferred
from ..services.orchestrator import ProcessingError, build_session, process_all, scan_csv_files
from ..services.summary import render_summary_line
from ..sheet.reader import SheetReadError, read_csv_text

"""CLI entrypoint.

Flow:
- Load ``.env`` (may set SKU_IMPORT_CONFIG), then the YAML config
- Import every CSV of the source directory through one session
- Print the SUMMARY line and exit with 0 (all imported), 2 (some failed or
  deferred) or 1 (fatal: config / directory)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

_PREVIEW_RECORDS = 3


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sku-import", description="SKU sales CSV importer")
    p.add_argument("--config", help="Path to the YAML config (default: config/import.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print detected formats, orientation and column roles per file then exit",
    )
    p.add_argument("--replace", action="store_true", help="Confirm replacing previously imported data")
    return p.parse_args(argv)


def _inspect_data(cfg: ImportConfig) -> int:
    directory = Path(cfg.source_directory)
    try:
        files = scan_csv_files(directory)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .csv files")
        return EXIT_SUCCESS_ALL
    session = build_session(cfg)
    for f in files:
        print(f"FILE: {f.name}")
        try:
            session.load_file(f.name, read_csv_text(f), division_name=cfg.division_files.get(f.name))
        except (SheetReadError, LargeFileDeferred) as e:
            print(f"  skipped: {e}")
            continue
        s = session.settings
        print(
            f"  separator={s.separator!r} date_format={s.date_format} "
            f"number_format={s.number_format} transposed={s.transposed}"
        )
        for header, role in zip(session.sheet.headers, session.roles):
            print(f"    {header!r}: {role_label(role)}")
        print(f"  date_range={session.date_range}")
        preview = session.preview()
        print(f"  records={len(preview)} sample={[r.to_dict() for r in preview.records[:_PREVIEW_RECORDS]]}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # [] を渡されたとき sys.argv を読まないよう None のときだけ補完
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    load_dotenv(dotenv_path=Path(".env"), override=False)

    config_path = resolve_config_path(args.config)
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    if args.replace:
        cfg = replace(cfg, confirm_replace=True)

    logger.info(f"Processing files from: {directory}")
    try:
        result = process_all(cfg)
    except (ProcessingError, ImportEngineError) as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result.total_files, result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0 or result.deferred_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
