# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for SchoolBoard.

Domains:
    auth: Identity provider, JWT sessions, password hashing.
    curriculum: Curriculum hierarchy admin and bulk reconciliation.
    grade: Grade entry.
    imports: Upload parsing and bulk student/teacher imports.
    performance: Flag aggregation and term-scoped reporting.
    term: Academic terms and per-request term resolution.
"""
