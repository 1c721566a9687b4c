from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from typing import Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ..common.cancellation import CancellationToken
from ..common.datetime_utils import parse_iso_date, parse_iso_timestamp
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LIST_LIMIT
from ..core.enums import Granularity, PresenceState, ReportType
from ..core.exceptions import DomainError, InvalidInput
from ..reports.model import ReportRequest

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "INVALID_INPUT": 400,
    "INVALID_RANGE": 400,
    "INVALID_INTERVAL": 422,
    "ALREADY_CLOCKED_IN": 409,
    "NOT_CLOCKED_IN": 409,
    "EMPLOYEE_NOT_FOUND": 404,
    "RECORD_NOT_FOUND": 404,
    "STORE_UNAVAILABLE": 503,
    "CANCELLED": 504,
}

CSV_FIELDS = [
    "id",
    "employee_id",
    "full_name",
    "department",
    "clock_in",
    "clock_out",
    "hours_worked",
    "status",
    "location",
    "notes",
    "location_out",
    "notes_out",
]


def error_response(e: DomainError):
    body = {"success": False, **e.to_dict()}
    return jsonify(body), STATUS_BY_CODE.get(e.code, 400)


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service
    aggregation = container.aggregation_service
    reports = container.report_service

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.code == "STORE_UNAVAILABLE":
            logger.error("%s %s -> %s", request.method, request.path, e)
        return error_response(e)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"success": False, "error": e.name, "message": e.description}), e.code

    def _cancel_token() -> Optional[CancellationToken]:
        timeout = current_app.config.get("REQUEST_TIMEOUT_SECONDS")
        return CancellationToken(timeout=float(timeout)) if timeout else None

    def _json_body() -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidInput("request body must be a JSON object")
        return data

    def _arg_date(name: str, *, required: bool = False) -> Optional[date]:
        raw = request.args.get(name, "").strip()
        if not raw:
            if required:
                raise InvalidInput(f"{name} is required", field=name)
            return None
        return parse_iso_date(raw)

    def _arg_timestamp(name: str) -> Optional[datetime]:
        raw = request.args.get(name, "").strip()
        return parse_iso_timestamp(raw) if raw else None

    def _arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
        raw = request.args.get(name, "").strip()
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise InvalidInput(f"{name} must be an integer", field=name) from e

    # ---- attendance -----------------------------------------------------------

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="api_clock_in")
    def api_clock_in():
        data = _json_body()
        record = attendance.clock_in(
            data.get("employee_id"),
            data.get("location") or "",
            data.get("notes") or "",
            cancel=_cancel_token(),
        )
        return jsonify({"success": True, "message": "Clocked in", "record": record.to_dict()}), 201

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="api_clock_out")
    def api_clock_out():
        data = _json_body()
        record = attendance.clock_out(
            data.get("employee_id"),
            data.get("location") or "",
            data.get("notes") or "",
            cancel=_cancel_token(),
        )
        return jsonify(
            {
                "success": True,
                "message": "Clocked out",
                "record": record.to_dict(status=attendance.status_of(record)),
            }
        )

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="api_bulk")
    def api_bulk():
        data = _json_body()
        action = data.get("action")
        ids = data.get("employee_ids")
        if not isinstance(ids, list) or not ids:
            raise InvalidInput("employee_ids must be a non-empty list", field="employee_ids")
        if action == "clock_in":
            op = attendance.bulk_clock_in
        elif action == "clock_out":
            op = attendance.bulk_clock_out
        else:
            raise InvalidInput("action must be clock_in or clock_out", field="action")

        results = op(ids, data.get("location") or "", data.get("notes") or "", cancel=_cancel_token())
        items = []
        for employee_id, outcome in results:
            if isinstance(outcome, DomainError):
                items.append({"employee_id": employee_id, "success": False, **outcome.to_dict()})
            else:
                items.append({"employee_id": employee_id, "success": True, "record": outcome.to_dict()})
        ok = sum(1 for i in items if i["success"])
        return jsonify({"success": ok == len(items), "processed": ok, "failed": len(items) - ok, "results": items})

    @app.route("/api/attendance/status/<employee_id>", methods=["GET"], endpoint="api_status")
    def api_status(employee_id: str):
        record = attendance.current_status(employee_id, cancel=_cancel_token())
        body = {
            "success": True,
            "state": (PresenceState.PRESENT if record else PresenceState.ABSENT).value,
            "record": record.to_dict() if record else None,
            "current_hours": round(attendance.current_duration_hours(record), 2) if record else None,
        }
        return jsonify(body)

    @app.route("/api/attendance/records", methods=["GET"], endpoint="api_records")
    def api_records():
        employee_id = request.args.get("employee_id")
        start, end = _arg_date("start_date"), _arg_date("end_date")
        limit = _arg_int("limit", DEFAULT_HISTORY_LIMIT)
        offset = _arg_int("offset", 0)
        cancel = _cancel_token()

        records = attendance.get_records(employee_id, start, end, limit, offset, cancel=cancel)
        total = attendance.count_records(employee_id, start, end, cancel=cancel)
        return jsonify(
            {
                "success": True,
                "records": [r.to_dict(status=attendance.status_of(r)) for r in records],
                "pagination": {"total": total, "limit": limit, "offset": offset},
            }
        )

    @app.route("/api/attendance/records/<record_id>", methods=["GET"], endpoint="api_record_detail")
    def api_record_detail(record_id: str):
        record = attendance.get_record(record_id, cancel=_cancel_token())
        return jsonify({"success": True, "record": record.to_dict(status=attendance.status_of(record))})

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="api_summary")
    def api_summary():
        stats = aggregation.summarize(
            request.args.get("employee_id"),
            _arg_date("start_date", required=True),
            _arg_date("end_date", required=True),
            cancel=_cancel_token(),
        )
        return jsonify({"success": True, "summary": stats.to_dict()})

    @app.route("/api/attendance/trends", methods=["GET"], endpoint="api_trends")
    def api_trends():
        buckets = aggregation.bucketed(
            request.args.get("employee_id"),
            _arg_date("start_date", required=True),
            _arg_date("end_date", required=True),
            request.args.get("granularity", Granularity.DAY.value),
            cancel=_cancel_token(),
        )
        return jsonify({"success": True, "buckets": [b.to_dict() for b in buckets]})

    @app.route("/api/attendance/totals/<employee_id>", methods=["GET"], endpoint="api_totals")
    def api_totals(employee_id: str):
        totals = aggregation.period_totals(employee_id, as_of=_arg_timestamp("as_of"), cancel=_cancel_token())
        return jsonify({"success": True, "totals": totals.to_dict()})

    @app.route("/api/attendance/all", methods=["GET"], endpoint="api_all_records")
    def api_all_records():
        page = reports.list_records(
            _arg_date("start_date", required=True),
            _arg_date("end_date", required=True),
            employee_id=request.args.get("employee_id") or None,
            department=request.args.get("department") or None,
            incomplete_only=request.args.get("incomplete_only", "").strip().lower() in {"1", "true", "yes"},
            limit=_arg_int("limit", DEFAULT_LIST_LIMIT),
            offset=_arg_int("offset", 0),
            cancel=_cancel_token(),
        )
        return jsonify({"success": True, **page.to_dict()})

    @app.route("/api/attendance/overview", methods=["GET"], endpoint="api_overview")
    def api_overview():
        overview = reports.daily_overview(
            as_of=_arg_timestamp("as_of"),
            department=request.args.get("department") or None,
            cancel=_cancel_token(),
        )
        return jsonify({"success": True, "overview": overview.to_dict()})

    @app.route("/api/attendance/alerts", methods=["GET"], endpoint="api_alerts")
    def api_alerts():
        alerts = reports.alerts(as_of=_arg_timestamp("as_of"), cancel=_cancel_token())
        return jsonify({"success": True, "alerts": [a.to_dict() for a in alerts]})

    # ---- reports --------------------------------------------------------------

    def _report_request(report_type: str) -> ReportRequest:
        return ReportRequest(
            start_date=_arg_date("start_date", required=True),
            end_date=_arg_date("end_date", required=True),
            report_type=report_type,
            employee_filter=request.args.get("employee_id") or None,
            department_filter=request.args.get("department") or None,
            working_days_in_range=_arg_int("working_days"),
        )

    @app.route("/api/reports", methods=["GET"], endpoint="api_reports")
    def api_reports():
        req = _report_request(request.args.get("report_type", ReportType.SUMMARY.value))
        report = reports.build_report(req, cancel=_cancel_token())
        return jsonify({"success": True, "report": report.to_dict()})

    def _write_report_csv(*, rows, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row.to_dict())

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/reports/detailed.csv", methods=["GET"], endpoint="api_reports_csv")
    def api_reports_csv():
        req = _report_request(ReportType.DETAILED.value)
        report = reports.build_report(req, cancel=_cancel_token())
        filename = f"attendance_{report.start_date.isoformat()}_{report.end_date.isoformat()}.csv"
        return _write_report_csv(rows=report.detailed_rows, filename=filename)
