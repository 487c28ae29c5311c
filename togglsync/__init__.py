"""Toggl time entry recording, calendar mirroring and back-editing service."""

__version__ = "1.0.0"

# Registers the TRACE level and Logger.trace before any module logs.
from togglsync.utils import log_setup  # noqa: E402,F401
