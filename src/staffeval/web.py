"""Flask dashboard serving the reports as HTML and JSON."""
from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd
from flask import Flask, abort, jsonify, render_template_string, request, send_file

from .aggregator import REPORT_NAMES, Aggregator
from .config import AppConfig
from .report import build_dashboard, export_report, report_frames
from .store import EvaluationStore, open_store

logger = logging.getLogger("staffeval.web")

HTML_TEMPLATE = """
<!doctype html>
<html lang=\"de\">
<head>
  <meta charset=\"utf-8\" />
  <title>Mitarbeiterbewertung Dashboard</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 24px; background: #f5f7fb; color: #1f2933; }
    header { margin-bottom: 24px; }
    section { background: #fff; padding: 16px 20px; border-radius: 8px; margin-bottom: 20px; box-shadow: 0 1px 3px rgba(0,0,0,0.08); }
    .kpis { display: flex; gap: 16px; }
    .kpi { flex: 1; background: #fff; border-radius: 8px; padding: 16px; box-shadow: 0 1px 3px rgba(0,0,0,0.08); }
    .kpi strong { display: block; font-size: 28px; margin-top: 8px; }
    .degraded { color: #b45309; font-size: 12px; }
    table.table { border-collapse: collapse; width: 100%; }
    table.table th, table.table td { border-bottom: 1px solid #e4e7eb; padding: 6px 8px; text-align: left; }
    .empty { color: #7b8794; }
    .alert-warning { background: #fff7e6; border: 1px solid #f7c16b; padding: 12px; border-radius: 6px; }
  </style>
</head>
<body>
  <header>
    <h1>Mitarbeiterbewertung</h1>
    <form method=\"get\">
      <label>Stichtag <input type=\"date\" name=\"asof\" value=\"{{ asof_text }}\" /></label>
      <button type=\"submit\">Aktualisieren</button>
      <a href=\"{{ download_url }}\">Excel herunterladen</a>
    </form>
  </header>

  {% if degraded %}
  <div class=\"alert-warning\">Platzhalterdaten für: {{ degraded|join(', ') }}</div>
  {% endif %}

  <div class=\"kpis\">
    {% for label, key, fmt in kpis %}
    <div class=\"kpi\">{{ label }}<strong>{{ fmt.format(report.value(key)) }}</strong>
      {% if report.results[key].degraded %}<span class=\"degraded\">Platzhalter</span>{% endif %}
    </div>
    {% endfor %}
  </div>

  {% for title, html in tables %}
  <section>
    <h2>{{ title }}</h2>
    {{ html|safe }}
  </section>
  {% endfor %}

  <footer>Erstellt: {{ generated_at }}</footer>
</body>
</html>
"""

KPIS = (
    ("Durchschnittliche Bewertung", "average_score", "{:.1f}"),
    ("Neueinstellungen (12 Monate)", "staff_dilution", "{:.1f}%"),
    ("Bewertungsquote", "completion_rate", "{:.0f}%"),
)


def _dataframe_to_html(df: pd.DataFrame, empty_message: str) -> str:
    if df.empty:
        return f"<p class='empty'>{empty_message}</p>"
    return df.fillna("").to_html(classes="table", index=False, border=0, justify="left")


def _parse_asof(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        abort(400, description="asof must be an ISO date (YYYY-MM-DD)")


def create_web_app(
    config: AppConfig,
    source: Optional[str | Path] = None,
    store: Optional[EvaluationStore] = None,
) -> Flask:
    """Return the dashboard app; a fresh store is opened per request unless one is given."""

    app = Flask(__name__)

    def current_store() -> EvaluationStore:
        return store if store is not None else open_store(config, source)

    @app.route("/")
    def index() -> str:
        asof = _parse_asof(request.args.get("asof"))
        report = build_dashboard(Aggregator(current_store(), config=config, asof=asof))
        frames = report_frames(report)
        tables = [
            (title, _dataframe_to_html(frames[sheet], "Keine Daten vorhanden."))
            for title, sheet in (
                ("Entwicklung der Bewertungen", "ScoreDevelopment"),
                ("Top-Performer", "TopPerformers"),
                ("Verbesserungspotenzial", "ImprovementPotential"),
                ("Stärken und Schwächen", "Strengths"),
                ("Veränderungen über Zeit", "ScoreChanges"),
                ("Häufige Begriffe", "WordCloud"),
                ("Bewertungstrends", "EvaluationTrends"),
            )
        ]
        return render_template_string(
            HTML_TEMPLATE,
            report=report,
            kpis=KPIS,
            tables=tables,
            degraded=report.degraded,
            asof_text=report.asof.isoformat(),
            download_url=f"/download?asof={report.asof.isoformat()}",
            generated_at=report.generated_at.strftime("%d.%m.%Y %H:%M"),
        )

    @app.route("/api/reports/<name>")
    def report_json(name: str):
        if name not in REPORT_NAMES:
            abort(404, description=f"Unknown report: {name}")
        asof = _parse_asof(request.args.get("asof"))
        result = Aggregator(current_store(), config=config, asof=asof).report(name)
        return jsonify(result.to_dict())

    @app.route("/api/dashboard")
    def dashboard_json():
        asof = _parse_asof(request.args.get("asof"))
        report = build_dashboard(Aggregator(current_store(), config=config, asof=asof))
        return jsonify(report.to_dict())

    @app.route("/download")
    def download():
        asof = _parse_asof(request.args.get("asof"))
        try:
            result = export_report(current_store(), config.report_path, config, asof=asof)
        except OSError as exc:
            logger.exception("Report export failed")
            return (f"Bericht konnte nicht erstellt werden: {exc}", 500)

        return send_file(
            result.report_file.resolve(),
            as_attachment=True,
            download_name=result.report_file.name,
            max_age=0,
        )

    return app


__all__ = ["create_web_app"]
