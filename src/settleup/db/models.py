from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from settleup.services.money import to_decimal


class SplitRole(str, Enum):
    PAYER = "payer"
    DEBTOR = "debtor"

    @classmethod
    def from_is_paid(cls, is_paid: bool) -> "SplitRole":
        return cls.PAYER if is_paid else cls.DEBTOR

    @property
    def is_paid(self) -> bool:
        return self is SplitRole.PAYER


@dataclass(frozen=True, slots=True)
class SplitRow:
    expense_id: int
    user_id: int
    amount: Decimal
    role: SplitRole

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SplitRow":
        return cls(
            expense_id=int(record["expense_id"]),
            user_id=int(record["user_id"]),
            amount=to_decimal(record["amount"]),
            role=SplitRole.from_is_paid(bool(record["is_paid"])),
        )


@dataclass(slots=True)
class User:
    id: int
    tg_id: int
    username: Optional[str]
    full_name: Optional[str]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "User":
        return cls(
            id=int(record["id"]),
            tg_id=int(record["tg_id"]),
            username=record["username"],
            full_name=record["full_name"],
        )

    @property
    def label(self) -> str:
        if self.username:
            return f"@{self.username}"
        return self.full_name or str(self.tg_id)


@dataclass(slots=True)
class Group:
    id: int
    owner_id: int
    title: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Group":
        return cls(
            id=int(record["id"]),
            owner_id=int(record["owner_id"]),
            title=record["title"],
            created_at=record.get("created_at"),
        )


@dataclass(slots=True)
class Expense:
    id: int
    group_id: int
    added_by: Optional[int]
    title: str
    amount: Decimal
    is_incomplete_amount: bool = False
    is_settlement: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Expense":
        return cls(
            id=int(record["id"]),
            group_id=int(record["group_id"]),
            added_by=record["added_by"],
            title=record["title"],
            amount=to_decimal(record["amount"]),
            is_incomplete_amount=bool(record.get("is_incomplete_amount", False)),
            is_settlement=bool(record.get("is_settlement", False)),
            created_at=record.get("created_at"),
        )
