# src/services/errors.py

"""Exceptions raised by the sync driver."""


class SyncError(Exception):
    """A fault that aborts a sync run."""


class SyncTimeoutError(SyncError):
    """The run exceeded its wall-clock budget."""


class SyncAlreadyRunningError(SyncError):
    """A second run was started while one is in progress."""
