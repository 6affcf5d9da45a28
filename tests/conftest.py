# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config.settings import ImportSettings


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create a mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    return db


def _scalar_result(value: Any) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    result.scalar.return_value = value
    return result


def _rows_result(values: list[Any]) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    result.all.return_value = values
    result.__iter__.side_effect = lambda: iter(values)
    return result


@pytest.fixture
def scalar_result():
    """Factory for a mock result whose scalar accessors return one value."""
    return _scalar_result


@pytest.fixture
def rows_result():
    """Factory for a mock result yielding rows from all(), scalars() and iteration."""
    return _rows_result


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def import_settings() -> ImportSettings:
    """Import settings with within-file duplicate flagging off."""
    return ImportSettings(flag_file_duplicates=False, temp_password_length=10)


@pytest.fixture
def sample_student_id() -> str:
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_term_id() -> str:
    return "550e8400-e29b-41d4-a716-446655440010"


@pytest.fixture
def sample_teacher_id() -> str:
    return "550e8400-e29b-41d4-a716-446655440020"
