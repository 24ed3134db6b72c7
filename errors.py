"""
errors.py
Exception types raised by the domain modules.
"""

from __future__ import annotations


class TitheError(Exception):
    pass


class ValidationError(TitheError):
    """Rejected input; nothing was written."""


class UnknownMonthError(ValidationError):
    def __init__(self, month_name: str):
        super().__init__(f"Unknown month name: {month_name!r}")
        self.month_name = month_name


class ImportFormatError(TitheError):
    """The workbook could not be opened at all."""


class InvalidTransitionError(TitheError):
    def __init__(self, batch_id: str, current: str, target: str):
        super().__init__(f"Batch {batch_id} cannot move from {current} to {target}.")
        self.batch_id = batch_id
        self.current = current
        self.target = target


class BatchLockedError(TitheError):
    def __init__(self, batch_id: str, status: str):
        super().__init__(f"Batch {batch_id} is {status}; its transactions are locked.")
        self.batch_id = batch_id
        self.status = status


class UnbalancedBatchError(TitheError):
    def __init__(self, batch_id: str, result):
        super().__init__(f"Batch {batch_id} cannot be finalized: {result.message}")
        self.batch_id = batch_id
        self.result = result
