"""Command line interface for the staffeval toolkit."""
from __future__ import annotations

import argparse
import json
from datetime import datetime
from typing import Dict, List

from .aggregator import REPORT_NAMES, Aggregator
from .config import STORE_BACKENDS, load_config
from .logging_utils import setup_logging
from .models import ValidationError
from .record import add_employee, build_evaluation, find_employee, load_evaluation_json, record_evaluation
from .report import export_report
from .store import open_store


def _score_pair(text: str) -> tuple:
    category, sep, points = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"Expected CATEGORY=POINTS, got '{text}'")
    try:
        return category.strip(), int(points)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Points must be an integer in '{text}'") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="staffeval", description="Employee evaluation statistics")
    parser.add_argument(
        "--source",
        help="Workbook or SQLite database to read (defaults to the configured path)",
    )
    parser.add_argument("--config", dest="config_path", help="Path to config file (YAML or JSON)")
    parser.add_argument("--store", choices=STORE_BACKENDS, help="Override the configured store backend")
    parser.add_argument("--asof", help="Reference date in YYYY-MM-DD format (defaults to today)")

    subparsers = parser.add_subparsers(dest="command")

    summarize = subparsers.add_parser("summarize", help="Export the dashboard report")
    summarize.add_argument(
        "--output",
        dest="output_path",
        default=None,
        help="Directory to write the Excel report. Defaults to config report_path.",
    )

    show = subparsers.add_parser("show", help="Print one report as JSON")
    show.add_argument("report", choices=REPORT_NAMES)

    record = subparsers.add_parser("record", help="Append an evaluation to the workbook")
    record.add_argument("--employee-id", type=int)
    record.add_argument(
        "--score",
        dest="scores",
        action="append",
        type=_score_pair,
        default=[],
        metavar="CATEGORY=POINTS",
        help="Points for one category; repeat for every category",
    )
    record.add_argument("--comment", default="")
    record.add_argument("--date", dest="on", help="Evaluation date (YYYY-MM-DD). Defaults to today.")
    record.add_argument("--work-location", default="")
    record.add_argument("--job-role", default="")
    record.add_argument("--task", dest="specific_task", default="")
    record.add_argument("--from-json", dest="json_path", help="Import an exported evaluation file instead")

    employee = subparsers.add_parser("add-employee", help="Append an employee to the workbook")
    employee.add_argument("--name", required=True)
    employee.add_argument("--job-role", required=True)
    employee.add_argument("--division", required=True)
    employee.add_argument("--hire-date", required=True, help="YYYY-MM-DD")

    web = subparsers.add_parser("web", help="Start the HTML dashboard")
    web.add_argument("--host", default="127.0.0.1", help="Host/IP for the web server")
    web.add_argument("--port", type=int, default=5000, help="Port for the web server")
    web.add_argument("--debug", action="store_true", help="Enable Flask debug mode")

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides: Dict[str, object] = {}
    if args.store:
        overrides["store"] = args.store
    config = load_config(args.config_path, overrides=overrides)
    logger = setup_logging(config)

    asof = None
    if args.asof:
        asof = datetime.fromisoformat(args.asof).date()

    if args.command in ("record", "add-employee"):
        if config.store != "workbook":
            parser.error(f"{args.command} needs the workbook store")
        if args.command == "record" and not args.json_path and args.employee_id is None:
            parser.error("record needs --employee-id or --from-json")
        workbook_path = args.source or config.workbook_path
        try:
            if args.command == "add-employee":
                created = add_employee(
                    workbook_path,
                    name=args.name,
                    job_role=args.job_role,
                    division=args.division,
                    hire_date=args.hire_date,
                    timeout=config.store_timeout,
                )
                logger.info("Employee %s added with id=%s", created.name, created.id)
                return 0

            if args.json_path:
                evaluation = load_evaluation_json(args.json_path)
            else:
                employee = find_employee(workbook_path, args.employee_id)
                evaluation = build_evaluation(
                    employee,
                    dict(args.scores),
                    comment=args.comment,
                    on=datetime.fromisoformat(args.on).date() if args.on else None,
                    work_location=args.work_location,
                    job_role=args.job_role,
                    specific_task=args.specific_task,
                )
            saved = record_evaluation(workbook_path, evaluation, timeout=config.store_timeout)
        except ValidationError as exc:
            logger.error("%s", exc)
            return 2
        logger.info("Evaluation recorded for employee=%s, total=%s", saved.employee_id, saved.total_score)
        return 0

    store = open_store(config, args.source)

    if args.command == "web":
        from .web import create_web_app

        app = create_web_app(config, source=args.source)
        logger.info("Starting dashboard at http://%s:%s", args.host, args.port)
        app.run(host=args.host, port=args.port, debug=args.debug)
        return 0

    if args.command == "show":
        result = Aggregator(store, config=config, asof=asof).report(args.report)
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2, default=str))
        return 0

    # default or summarize
    output_path = getattr(args, "output_path", None) or config.report_path
    result = export_report(store, output_path, config, asof=asof)

    report = result.report
    logger.info(
        "Report for %s: average score %.1f, completion rate %.0f%%",
        report.asof,
        report.value("average_score"),
        report.value("completion_rate"),
    )
    for name in report.degraded:
        logger.warning("%s shows default data", name)
    print(f"Report written to {result.report_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
