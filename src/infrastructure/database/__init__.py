# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PostgreSQL access for SchoolBoard."""

from src.infrastructure.database.connection import (
    DatabaseError,
    build_engine,
    check_database_connection,
    close_database,
    get_session,
    init_database,
)

__all__ = [
    "DatabaseError",
    "build_engine",
    "check_database_connection",
    "close_database",
    "get_session",
    "init_database",
]
