"""Store-level failures, kept distinct so callers can recover from them."""

from __future__ import annotations


class StoreError(Exception):
    """Unexpected store failure."""


class RecordNotFound(StoreError):
    def __init__(self, table: str, key: object) -> None:
        super().__init__(f"{table} not found: {key!r}")
        self.table = table
        self.key = key


class ConstraintViolation(StoreError):
    def __init__(self, table: str, key: object) -> None:
        super().__init__(f"unique constraint failed on {table}: {key!r}")
        self.table = table
        self.key = key
