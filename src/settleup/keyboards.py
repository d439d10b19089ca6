from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

GROUP_VIEW = "group"
MY_VIEW = "mine"


def build_settle_keyboard(group_id: int, active_view: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="· Вся группа" if active_view == GROUP_VIEW else "Вся группа",
                    callback_data=f"settle_view:{group_id}:{GROUP_VIEW}",
                ),
                InlineKeyboardButton(
                    text="· Мои расчёты" if active_view == MY_VIEW else "Мои расчёты",
                    callback_data=f"settle_view:{group_id}:{MY_VIEW}",
                ),
            ],
            [InlineKeyboardButton(text="Балансы", callback_data=f"balances:{group_id}")],
        ]
    )
