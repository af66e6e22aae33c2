# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared pytest setup. Markers are declared in pyproject.toml."""

from collections.abc import Generator

import pytest

from src.core.config.settings import clear_settings_cache


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Re-read the environment in every test so monkeypatched variables apply."""
    clear_settings_cache()
    yield
    clear_settings_cache()
