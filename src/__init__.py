"""SchoolBoard Backend.

School management service: curriculum, students, teachers, terms, grades
and term-scoped performance reporting with low-point flags.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
