# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for SchoolBoard.

This package contains cross-cutting utilities:
- logging: structlog setup and per-request logging context
- datetime: Timezone-aware datetime operations
"""

from src.utils.datetime import utc_now
from src.utils.logging import bind_request_context, clear_request_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_request_context",
    "clear_request_context",
    # Datetime
    "utc_now",
]
