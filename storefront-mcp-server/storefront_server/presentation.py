"""Presentation adapter contract used by the checkout workflow."""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Protocol

from .models import Customer

logger = logging.getLogger(__name__)


class NoticeKind(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Presenter(Protocol):
    """Renders notices and collects answers from the shopper.

    Any implementation works, including non-interactive ones that return
    fixed answers.
    """

    async def notify(self, kind: NoticeKind, title: str, message: str) -> None: ...

    async def confirm(self, title: str, body: str, confirm_label: str, cancel_label: str) -> bool: ...

    async def prompt_customer(self) -> Optional[Customer]:
        """Return the entered customer, or None if the shopper cancelled."""
        ...


@dataclass
class Notice:
    kind: NoticeKind
    title: str
    message: str

    def render(self) -> str:
        icon = {NoticeKind.INFO: "ℹ️", NoticeKind.WARNING: "⚠️", NoticeKind.ERROR: "❌"}[self.kind]
        return f"{icon} {self.title}: {self.message}"


class ToolPresenter:
    """Answers prompts from values supplied up front by a tool or API call.

    Confirmations are answered in order from ``answers``; once exhausted,
    further confirmations are declined. The customer is handed out once, so
    a second prompt (after a validation warning) cancels.
    """

    def __init__(self, customer: Optional[Customer] = None, answers: Iterable[bool] = ()) -> None:
        self._customer = customer
        self._answers = deque(answers)
        self.notices: list[Notice] = []

    async def notify(self, kind: NoticeKind, title: str, message: str) -> None:
        logger.info(f"[{kind.value}] {title}: {message}")
        self.notices.append(Notice(kind, title, message))

    async def confirm(self, title: str, body: str, confirm_label: str, cancel_label: str) -> bool:
        answer = self._answers.popleft() if self._answers else False
        logger.debug(f"{title}: {confirm_label if answer else cancel_label}")
        return answer

    async def prompt_customer(self) -> Optional[Customer]:
        customer, self._customer = self._customer, None
        return customer

    def render(self) -> str:
        return "\n".join(notice.render() for notice in self.notices)
