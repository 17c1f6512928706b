from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..common.money import parse_currency
from ..common.validators import require_non_negative


@dataclass(frozen=True)
class DiscountDetail:
    bill_id: str
    reason: str
    amount: int

    def to_dict(self) -> dict:
        return {"bill_id": self.bill_id, "reason": self.reason, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DiscountDetail":
        return cls(bill_id=str(data["bill_id"]), reason=str(data.get("reason") or ""), amount=int(data["amount"]))


@dataclass(frozen=True)
class ShiftClosingData:
    """Báo cáo chốt ca do nhân viên (hoặc quản lý) gửi.

    Money fields are integers in the smallest currency unit. ``total_discounts``
    is always the sum of ``discounts_details``; use :meth:`build` to construct.
    """

    total_bills: int = 0
    total_transfer: int = 0
    total_cash: int = 0
    total_discounts: int = 0
    discounts_details: Tuple[DiscountDetail, ...] = ()
    opening_balance: int = 0
    closing_balance: int = 0
    incidents: str = ""
    customer_feedback: str = ""

    @classmethod
    def build(
        cls,
        *,
        total_bills: int = 0,
        total_transfer: int = 0,
        total_cash: int = 0,
        discounts_details: Iterable[DiscountDetail] = (),
        opening_balance: int = 0,
        closing_balance: int = 0,
        incidents: str = "",
        customer_feedback: str = "",
    ) -> "ShiftClosingData":
        details = tuple(discounts_details)
        for d in details:
            require_non_negative(d.amount, "Số tiền giảm giá")
        return cls(
            total_bills=require_non_negative(total_bills, "Tổng số bill"),
            total_transfer=require_non_negative(total_transfer, "Chuyển khoản"),
            total_cash=require_non_negative(total_cash, "Tiền mặt"),
            total_discounts=sum(d.amount for d in details),
            discounts_details=details,
            opening_balance=require_non_negative(opening_balance, "Tiền đầu ca"),
            closing_balance=require_non_negative(closing_balance, "Tiền cuối ca"),
            incidents=(incidents or "").strip(),
            customer_feedback=(customer_feedback or "").strip(),
        )

    def to_dict(self) -> dict:
        return {
            "total_bills": self.total_bills,
            "total_transfer": self.total_transfer,
            "total_cash": self.total_cash,
            "total_discounts": self.total_discounts,
            "discounts_details": [d.to_dict() for d in self.discounts_details],
            "opening_balance": self.opening_balance,
            "closing_balance": self.closing_balance,
            "incidents": self.incidents,
            "customer_feedback": self.customer_feedback,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShiftClosingData":
        return cls.build(
            total_bills=int(data.get("total_bills") or 0),
            total_transfer=int(data.get("total_transfer") or 0),
            total_cash=int(data.get("total_cash") or 0),
            discounts_details=[DiscountDetail.from_dict(d) for d in data.get("discounts_details") or []],
            opening_balance=int(data.get("opening_balance") or 0),
            closing_balance=int(data.get("closing_balance") or 0),
            incidents=data.get("incidents") or "",
            customer_feedback=data.get("customer_feedback") or "",
        )


@dataclass(frozen=True)
class AdjustedClosingData:
    """Manager override; only the fields that were overridden are set."""

    total_cash: Optional[int] = None
    total_transfer: Optional[int] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in (("total_cash", self.total_cash), ("total_transfer", self.total_transfer)) if v is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AdjustedClosingData":
        cash = data.get("total_cash")
        transfer = data.get("total_transfer")
        return cls(
            total_cash=int(cash) if cash is not None else None,
            total_transfer=int(transfer) if transfer is not None else None,
        )


@dataclass(frozen=True)
class FieldChange:
    field: str
    from_value: Any
    to_value: Any

    def to_dict(self) -> dict:
        return {"field": self.field, "from": self.from_value, "to": self.to_value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldChange":
        return cls(field=str(data["field"]), from_value=data.get("from"), to_value=data.get("to"))


@dataclass(frozen=True)
class ShiftAuditLog:
    """One append-only entry of a shift's reconciliation trail."""

    log_id: str
    action: str
    timestamp: str
    user_name: str
    comment: Optional[str] = None
    changes: Tuple[FieldChange, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.log_id,
            "action": self.action,
            "timestamp": self.timestamp,
            "user_name": self.user_name,
            "comment": self.comment,
            "changes": [c.to_dict() for c in self.changes],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShiftAuditLog":
        return cls(
            log_id=str(data["id"]),
            action=str(data["action"]),
            timestamp=str(data["timestamp"]),
            user_name=str(data.get("user_name") or ""),
            comment=data.get("comment"),
            changes=tuple(FieldChange.from_dict(c) for c in data.get("changes") or ()),
        )


@dataclass
class ClosingDraft:
    """Incremental closing-report form state.

    Amount fields are fed raw user text and sanitised with ``parse_currency``;
    discount lines are only accepted with a bill id and a positive amount.
    """

    total_bills: int = 0
    total_transfer: int = 0
    total_cash: int = 0
    opening_balance: int = 0
    closing_balance: int = 0
    incidents: str = ""
    customer_feedback: str = ""
    discounts: list = field(default_factory=list)

    AMOUNT_FIELDS = ("total_bills", "total_transfer", "total_cash", "opening_balance", "closing_balance")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ClosingDraft":
        """Build a draft from submitted form/JSON data; invalid discount lines are dropped."""
        draft = cls(
            incidents=str(data.get("incidents") or ""),
            customer_feedback=str(data.get("customer_feedback") or ""),
        )
        for name in cls.AMOUNT_FIELDS:
            if name in data:
                draft.set_amount(name, data[name])
        for line in data.get("discounts_details") or ():
            if isinstance(line, Mapping):
                draft.add_discount(line.get("bill_id") or "", line.get("reason") or "", line.get("amount"))
        return draft

    def set_amount(self, field_name: str, raw: Any) -> int:
        if field_name not in self.AMOUNT_FIELDS:
            raise KeyError(field_name)
        value = parse_currency(raw)
        setattr(self, field_name, value)
        return value

    def add_discount(self, bill_id: str, reason: str, amount: Any) -> bool:
        bill_id = (bill_id or "").strip()
        value = parse_currency(amount)
        if not bill_id or value <= 0:
            return False
        self.discounts.append(DiscountDetail(bill_id=bill_id, reason=(reason or "").strip(), amount=value))
        return True

    @property
    def total_discounts(self) -> int:
        return sum(d.amount for d in self.discounts)

    def to_closing_data(self) -> ShiftClosingData:
        return ShiftClosingData.build(
            total_bills=self.total_bills,
            total_transfer=self.total_transfer,
            total_cash=self.total_cash,
            discounts_details=self.discounts,
            opening_balance=self.opening_balance,
            closing_balance=self.closing_balance,
            incidents=self.incidents,
            customer_feedback=self.customer_feedback,
        )

