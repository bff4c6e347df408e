# src/dev_coach/core/errors.py

"""
Error taxonomy shared by stores, scheduler and command helpers.

- ValidationError: bad input, rejected before any mutation.
- NotFoundError: the targeted id does not exist; nothing was changed.
- StoreError: SQLite / IO failure.
"""

from __future__ import annotations


class CoachError(Exception):
    """Base class for all dev_coach errors."""


class ValidationError(CoachError):
    pass


class ConfigError(ValidationError):
    """Configuration value that cannot be used (e.g. unknown timezone)."""


class NotFoundError(CoachError):
    def __init__(self, kind: str, obj_id: object) -> None:
        super().__init__(f"{kind} not found: {obj_id}")
        self.kind = kind
        self.obj_id = obj_id


class StoreError(CoachError):
    pass
