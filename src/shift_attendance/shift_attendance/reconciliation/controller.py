from __future__ import annotations

from flask import Flask, request

from ..container import Container
from ..users.model import User
from ..web import json_errors, manager_required, ok, parse_date, payload
from .model import ClosingDraft


def register(app: Flask, container: Container) -> None:
    service = container.reconciliation_service

    @app.route("/api/reconciliation/pending", methods=["GET"], endpoint="pending_reconciliation")
    @json_errors
    @manager_required(container)
    def pending_reconciliation(user: User):
        return ok(shifts=[r.to_dict() for r in service.pending(user)])

    @app.route("/api/reconciliation/<record_id>/approve", methods=["POST"], endpoint="approve_shift")
    @json_errors
    @manager_required(container)
    def approve_shift(user: User, record_id: str):
        data = payload()
        record = service.approve(
            record_id,
            actor=user,
            cash_input=data.get("total_cash"),
            transfer_input=data.get("total_transfer"),
            comment=data.get("comment", ""),
        )
        return ok(message="Đã đối soát ca trực.", shift=record.to_dict())

    @app.route("/api/reconciliation/<record_id>/closing", methods=["POST"], endpoint="manager_closing")
    @json_errors
    @manager_required(container)
    def manager_closing(user: User, record_id: str):
        data = payload()
        records = container.shift_record_service
        closing = ClosingDraft.from_mapping(data).to_closing_data()
        updated = records.manager_closing(records.get(record_id), closing, actor=user, comment=data.get("comment"))
        return ok(message="Đã bổ sung báo cáo chốt ca.", shift=updated.to_dict())

    @app.route("/api/reconciliation/summary", methods=["GET"], endpoint="financial_summary")
    @json_errors
    @manager_required(container)
    def financial_summary(user: User):
        default_start, default_end = container.report_service.default_range(user)
        summary = service.summary(
            user,
            start=parse_date(request.args.get("start"), default_start),
            end=parse_date(request.args.get("end"), default_end),
            branch_id=request.args.get("branch_id") or None,
        )
        return ok(summary=summary.to_dict())
