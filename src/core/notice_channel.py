"""
Notice Channel

This module provides the error/notice channel through which the orchestration
core reports recoverable per-operation failures to the UI layer.

Inputs:
    - ViewerError instances from core components
    - Severity ("error" or "info")

Outputs:
    - notice_posted signal carrying a Notice
    - Bounded notice history

Requirements:
    - PySide6 for signals
    - core.viewer_errors for the error taxonomy
    - utils.debug_log for optional debug tracing
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Literal, Optional

from PySide6.QtCore import QObject, Signal

from core.viewer_errors import ViewerError
from utils.debug_log import debug_log


Severity = Literal["error", "info"]


@dataclass(frozen=True)
class Notice:
    """One entry on the notice channel."""

    kind: str
    message: str
    severity: Severity = "error"
    slot_index: Optional[int] = None
    error: Optional[ViewerError] = None


class NoticeChannel(QObject):
    """
    Collects and republishes recoverable errors and benign notices.

    Features:
    - Signal for subscribers (UI status bar, dialogs)
    - Bounded history for late subscribers
    - Console output for error-severity notices
    """

    # Signals
    notice_posted = Signal(object)  # Notice

    def __init__(self, history_size: int = 50):
        """
        Initialize the notice channel.

        Args:
            history_size: Maximum number of notices kept in history
        """
        super().__init__()
        self._history: Deque[Notice] = deque(maxlen=max(1, history_size))

    def post(self, error: ViewerError, severity: Severity = "error") -> Notice:
        """
        Report an error on the channel.

        Args:
            error: The recoverable error to report
            severity: "error" for failures, "info" for benign no-ops

        Returns:
            The Notice that was published
        """
        notice = Notice(
            kind=error.kind,
            message=error.message,
            severity=severity,
            slot_index=error.slot_index,
            error=error,
        )
        self._history.append(notice)
        if severity == "error":
            print(f"Viewer error [{notice.kind}]: {notice.message}")
        debug_log("notice_channel.py:post", notice.message, {"kind": notice.kind, "severity": severity})
        self.notice_posted.emit(notice)
        return notice

    def history(self) -> List[Notice]:
        """Return the retained notices, oldest first."""
        return list(self._history)

    def latest(self) -> Optional[Notice]:
        """Return the most recent notice, or None."""
        return self._history[-1] if self._history else None

    def errors(self) -> List[Notice]:
        """Return only the error-severity notices in history."""
        return [notice for notice in self._history if notice.severity == "error"]

    def clear(self) -> None:
        """Forget the notice history."""
        self._history.clear()
