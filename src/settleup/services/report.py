from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from aiogram.utils.text_decorations import html_decoration

from settleup.db.models import Expense, SplitRole, SplitRow, User
from settleup.services.balances import Balance
from settleup.services.money import format_amount
from settleup.services.settlement import Settlement
from settleup.services.spendings import UserSpendings
from settleup.services.views import PerspectiveEntry


def quote(value: Any) -> str:
    # бот шлёт всё в HTML, пользовательский текст экранируем
    return html_decoration.quote(str(value))


def label_of(labels: Mapping[int, str], user_id: int) -> str:
    return quote(labels.get(user_id, f"#{user_id}"))


def format_balances(balances: Mapping[int, Balance], labels: Mapping[int, str]) -> str:
    lines = ["Балансы группы:"]
    if not balances:
        lines.append("• пока нет расходов")
        return "\n".join(lines)
    for user_id, balance in balances.items():
        lines.append(f"• {label_of(labels, user_id)}: {format_amount(balance.net_amount)}")
    return "\n".join(lines)


def format_settlements(settlements: Sequence[Settlement], labels: Mapping[int, str]) -> str:
    if not settlements:
        return "Все в расчёте 🎉"
    lines = ["Для сведения долгов:"]
    for s in settlements:
        lines.append(f"• {label_of(labels, s.from_user)} → {label_of(labels, s.to_user)}: {format_amount(s.amount)}")
    return "\n".join(lines)


def format_perspective(entries: Iterable[PerspectiveEntry], labels: Mapping[int, str]) -> str:
    lines = []
    for entry in entries:
        who = label_of(labels, entry.counterparty)
        if entry.signed_amount > 0:
            lines.append(f"• {who} должен вам {format_amount(entry.signed_amount)}")
        else:
            lines.append(f"• вы должны {who} {format_amount(-entry.signed_amount)}")
    if not lines:
        return "Вы ни с кем не должны рассчитываться."
    return "\n".join(["Ваши расчёты:", *lines])


def format_spendings(spendings: UserSpendings) -> str:
    lines = [
        "Ваши траты:",
        f"Оплачено: {format_amount(spendings.total_paid)}",
        f"Ваша доля: {format_amount(spendings.total_owed)}",
        f"Итого: {format_amount(spendings.net_spending)}",
    ]
    if spendings.expenses:
        lines.append("\nРасходы:")
    for item in spendings.expenses:
        lines.append(
            f"• #{item.expense_id} {quote(item.title)}: "
            f"оплачено {format_amount(item.paid)}, доля {format_amount(item.owed)}"
        )
    return "\n".join(lines)


def format_expenses(expenses: Sequence[Expense], labels: Mapping[int, str]) -> str:
    if not expenses:
        return "Расходов пока нет."
    lines = ["Расходы группы:"]
    for expense in expenses:
        author = label_of(labels, expense.added_by) if expense.added_by is not None else "—"
        lines.append(f"• #{expense.id} {quote(expense.title)}: {format_amount(expense.amount)} ({author})")
    return "\n".join(lines)


def format_expense(expense: Expense, splits: Sequence[SplitRow], labels: Mapping[int, str]) -> str:
    lines = [f"<b>#{expense.id} {quote(expense.title)}</b>: {format_amount(expense.amount)}"]
    if expense.is_incomplete_amount:
        lines.append("сумма неполная")
    paid = [s for s in splits if s.role == SplitRole.PAYER]
    owed = [s for s in splits if s.role == SplitRole.DEBTOR]
    if paid:
        lines.append("Заплатили:")
        lines.extend(f"• {label_of(labels, s.user_id)}: {format_amount(s.amount)}" for s in paid)
    if owed:
        lines.append("Должны:")
        lines.extend(f"• {label_of(labels, s.user_id)}: {format_amount(s.amount)}" for s in owed)
    return "\n".join(lines)


def format_settlement_history(rows: Iterable[Mapping[str, Any]], labels: Mapping[int, str]) -> str:
    lines = []
    for row in rows:
        lines.append(
            f"• #{row['id']} {label_of(labels, int(row['from_user_id']))} → "
            f"{label_of(labels, int(row['to_user_id']))}: {format_amount(row['amount'])} ({quote(row['title'])})"
        )
    if not lines:
        return "Расчётов пока не было."
    return "\n".join(["История расчётов:", *lines])


def member_labels(members: Iterable[Mapping[str, Any]]) -> dict[int, str]:
    """``user_id -> label`` for rows joined from ``group_members`` and ``users``.

    Labels are raw text; rendering quotes them.
    """
    return {
        int(m["user_id"]): User(
            id=int(m["user_id"]),
            tg_id=m["tg_id"],
            username=m["username"],
            full_name=m["full_name"],
        ).label
        for m in members
    }
