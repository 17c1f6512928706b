from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..container import Container
from ..users.model import User
from ..web import json_errors, manager_required, ok, parse_date
from .service import export_csv, export_filename


def register(app: Flask, container: Container) -> None:
    service = container.report_service

    def _rows(user: User):
        default_start, default_end = service.default_range(user)
        start = parse_date(request.args.get("start"), default_start)
        end = parse_date(request.args.get("end"), default_end)
        branch_id = service.scope_branch(user, request.args.get("branch_id") or None)
        return start, end, branch_id, service.attendance_rows(user, start=start, end=end, branch_id=branch_id)

    @app.route("/api/reports/attendance", methods=["GET"], endpoint="attendance_report")
    @json_errors
    @manager_required(container)
    def attendance_report(user: User):
        start, end, branch_id, rows = _rows(user)
        return ok(
            start=start.isoformat(),
            end=end.isoformat(),
            branch_id=branch_id,
            rows=[r.to_dict() for r in rows],
        )

    @app.route("/api/reports/attendance.csv", methods=["GET"], endpoint="export_attendance")
    @json_errors
    @manager_required(container)
    def export_attendance(user: User):
        start, end, branch_id, rows = _rows(user)
        branch = container.state.branches.get(branch_id) if branch_id else None
        return send_file(
            io.BytesIO(export_csv(rows)),
            mimetype="text/csv",
            as_attachment=True,
            download_name=export_filename(branch, start, end),
        )

    @app.route("/api/dashboard", methods=["GET"], endpoint="dashboard")
    @json_errors
    @manager_required(container)
    def dashboard(user: User):
        pending = len(container.request_service.pending_for(user))
        stats = service.dashboard(user, pending_requests=pending)
        return ok(stats=stats.to_dict())
