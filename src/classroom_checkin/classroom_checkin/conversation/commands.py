from __future__ import annotations

from enum import Enum
from typing import Optional


class Command(str, Enum):
    REGISTER = "register"
    PROFILE = "profile"
    HISTORY = "history"
    SUMMARY = "summary"
    JOIN_CLASS = "join"
    LEAVE_CLASS = "leave"
    UNBIND = "unbind"
    HELP = "help"
    CANCEL = "cancel"


# English keywords plus the Chinese keywords students already know from the bot menu.
_KEYWORDS: dict[str, Command] = {
    "register": Command.REGISTER,
    "註冊": Command.REGISTER,
    "綁定": Command.REGISTER,
    "profile": Command.PROFILE,
    "我的資料": Command.PROFILE,
    "查詢": Command.PROFILE,
    "history": Command.HISTORY,
    "出席紀錄": Command.HISTORY,
    "統計": Command.HISTORY,
    "summary": Command.SUMMARY,
    "課程統計": Command.SUMMARY,
    "join": Command.JOIN_CLASS,
    "加入班級": Command.JOIN_CLASS,
    "leave": Command.LEAVE_CLASS,
    "退出班級": Command.LEAVE_CLASS,
    "unbind": Command.UNBIND,
    "解除綁定": Command.UNBIND,
    "help": Command.HELP,
    "說明": Command.HELP,
    "幫助": Command.HELP,
    "cancel": Command.CANCEL,
    "取消": Command.CANCEL,
}

CONFIRM_WORDS = frozenset({"yes", "y", "confirm", "是", "確認"})


def classify(text: str) -> Optional[Command]:
    return _KEYWORDS.get((text or "").strip().lower())


def is_confirmation(text: str) -> bool:
    return (text or "").strip().lower() in CONFIRM_WORDS
