from __future__ import annotations

from decimal import Decimal, InvalidOperation

# NUMERIC(19,4) держит не больше 15 знаков до запятой
MAX_AMOUNT = Decimal("1e15")

PAID_PREFIX = "paid:"


def parse_amount(value: str) -> Decimal:
    """Parse a user-typed amount such as ``1 250,50`` into ``Decimal``."""
    cleaned = value.strip().replace("\u00a0", "").replace(" ", "").replace(",", ".")
    if not cleaned:
        raise ValueError("Укажите сумму")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError("Некорректная сумма") from exc
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        raise ValueError("Некорректная сумма")
    return amount


def parse_id(value: str) -> int:
    try:
        return int(value.strip().lstrip("#"))
    except ValueError as exc:
        raise ValueError("Некорректный ID") from exc


def split_command(text: str) -> list[str]:
    """``/cmd a | b | c`` -> ``["a", "b", "c"]``; the command token is dropped."""
    parts = text.split(maxsplit=1)
    if len(parts) < 2:
        return []
    return [part.strip() for part in parts[1].split("|")]


def parse_usernames(value: str) -> list[str]:
    return [part.lstrip("@") for part in value.split() if part.lstrip("@")]


def is_payers_section(value: str) -> bool:
    return value.strip().lower().startswith(PAID_PREFIX)


def parse_payers(value: str) -> list[tuple[str, Decimal]]:
    """``paid: @anna 60 @bob 40`` -> ``[("anna", 60), ("bob", 40)]``."""
    body = value.strip()
    if is_payers_section(body):
        body = body[len(PAID_PREFIX):]
    tokens = body.split()
    if not tokens or len(tokens) % 2:
        raise ValueError("Укажите плательщиков: paid: @user сумма ...")

    payers: list[tuple[str, Decimal]] = []
    for username, raw_amount in zip(tokens[::2], tokens[1::2]):
        if not username.startswith("@") or len(username) < 2:
            raise ValueError(f"Ожидался @username, а не «{username}»")
        amount = parse_amount(raw_amount)
        if amount <= 0:
            raise ValueError("Сумма плательщика должна быть больше нуля")
        payers.append((username[1:], amount))
    return payers
