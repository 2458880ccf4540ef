"""
Terminal error type for the ingestion pipeline.

Only two conditions abort a run; every other anomaly is a warning attached
to the successful result.
"""

from __future__ import annotations

from enum import Enum

from workbook_ingestion.logging_setup import get_logger

logger = get_logger("errors")


class IngestionErrorKind(str, Enum):
    UNREADABLE_WORKBOOK = "unreadable_workbook"
    NO_USABLE_WORKSHEET = "no_usable_worksheet"


class IngestionError(Exception):
    """Raised when a workbook cannot be ingested at all."""

    def __init__(self, kind: IngestionErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "error": self.message}


class WarningLog:
    """Accumulates non-fatal warnings during one ingestion run.

    Messages keep their insertion order; repeats are dropped so that a
    condition hit on several sheets is reported once.
    """

    def __init__(self) -> None:
        self._messages: list[str] = []

    def add(self, msg: str) -> None:
        if msg in self._messages:
            return
        self._messages.append(msg)
        logger.warning("%s", msg)

    def extend(self, messages: list[str]) -> None:
        for msg in messages:
            self.add(msg)

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
