from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from contact_io.config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config
from contact_io.csvio.writer import generate_import_template
from contact_io.logging.init import log_summary, setup_logging
from contact_io.services.exporter import ContactExportError, export_contacts
from contact_io.services.orchestrator import ContactImportError, import_csv_file
from contact_io.services.summary import render_notification, render_summary_line

"""CLI entrypoint.

    contact-io [--config PATH] [--debug] import FILE.csv [--organization ID] [--dry-run]
    contact-io [--config PATH] [--debug] export [--organization ID] [--output-dir DIR]
    contact-io template [--output PATH]

Exit codes: 0 all rows imported, 2 at least one row failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

TEMPLATE_FILENAME = "contacts-import-template.csv"


def _connect(cfg: AppConfig) -> Any:
    """Open a psycopg2 connection for explicit transactions.

    The orchestrator issues BEGIN/COMMIT itself, so the connection runs in
    autocommit mode and those statements are not nested in an implicit
    transaction.
    """
    conn = psycopg2.connect(cfg.database.resolve_dsn())
    conn.autocommit = True
    return conn


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so PostgreSQL connection variables take priority."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="contact-io", description="Contact CSV import / export")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import contacts from a CSV file")
    imp.add_argument("csv_file", type=Path)
    imp.add_argument("--organization", help="Organization id (overrides config)")
    imp.add_argument("--dry-run", action="store_true", help="Validate only, do not write")

    exp = sub.add_parser("export", help="Export contacts to CSV")
    exp.add_argument("--organization", help="Organization id (overrides config)")
    exp.add_argument("--output-dir", type=Path, help="Directory for the export file")

    tpl = sub.add_parser("template", help="Write an import template CSV")
    tpl.add_argument("--output", type=Path, default=Path(TEMPLATE_FILENAME))
    return p.parse_args(argv)


def _cmd_template(args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        args.output.write_text(generate_import_template() + "\n", encoding="utf-8")
    except OSError as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    logger.info(f"template written to {args.output}")
    return EXIT_SUCCESS_ALL


def _run_import(cfg: AppConfig, args: argparse.Namespace, organization_id: str | None, cursor: Any):
    return import_csv_file(
        args.csv_file,
        organization_id,
        cursor,
        settings=cfg.settings,
        error_log_dir=Path(cfg.error_log_directory),
    )


def _cmd_import(cfg: AppConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    organization_id = args.organization or cfg.organization_id
    if not args.csv_file.exists():
        logger.error(f"file not found: {args.csv_file}")
        return EXIT_FATAL

    # DB 接続制御: テスト等で完全に無効化したい場合 DISABLE_DB_CONNECT=1
    disable_db = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    conn = None
    if disable_db:
        logger.debug("database disabled -> dry-run mode")
    else:
        try:
            conn = _connect(cfg)
        except psycopg2.Error as db_e:
            # --dry-run なしの接続失敗は致命的
            logger.error(f"Import failed: database unavailable: {db_e}")
            return EXIT_FATAL

    db_mode = "dry-run" if conn is None else "live"
    try:
        if conn is None:
            report = _run_import(cfg, args, organization_id, None)
        else:
            try:
                with conn.cursor() as cur:
                    report = _run_import(cfg, args, organization_id, cur)
            finally:
                conn.close()
    except ContactImportError as e:
        logger.error(f"Import failed: {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} source={report.source}")
    level, message = render_notification(report.result, dry_run=conn is None)
    logger.log(level, message)
    for err in report.result.errors:
        logger.debug(f"row {err.row}: {err.error}")

    # log_summary が "SUMMARY " を付与するため取り除く
    log_summary(render_summary_line(report)[len("SUMMARY "):])

    if report.result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _cmd_export(cfg: AppConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    organization_id = args.organization or cfg.organization_id
    directory = args.output_dir or Path(cfg.export_directory)
    if not organization_id:
        logger.error("Export failed: No organization found")
        return EXIT_FATAL
    try:
        conn = _connect(cfg)
    except psycopg2.Error as e:
        logger.error(f"Export failed: database unavailable: {e}")
        return EXIT_FATAL
    try:
        with conn.cursor() as cur:
            result = export_contacts(cur, organization_id, directory)
    except ContactExportError as e:
        logger.error(f"Export failed: {e}")
        return EXIT_FATAL
    finally:
        conn.close()
    logger.info(f"Contacts exported successfully ({result.exported}) -> {result.path}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # None のときのみシステム引数を読む (テストで main([]) を渡すケース)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    if args.command == "template":
        return _cmd_template(args, logger)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "import":
        return _cmd_import(cfg, args, logger)
    return _cmd_export(cfg, args, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
