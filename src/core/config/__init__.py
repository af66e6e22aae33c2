# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Environment-driven settings.

Each concern reads its own variable prefix (DB_, JWT_, APPLICATION_, UPLOAD_
and so on); ``get_settings()`` returns the cached aggregate.
"""

from src.core.config.settings import (
    APISettings,
    ApplicationRulesSettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    RateLimitSettings,
    Settings,
    UploadSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "DatabaseSettings",
    "JWTSettings",
    "CORSSettings",
    "APISettings",
    "RateLimitSettings",
    "ApplicationRulesSettings",
    "UploadSettings",
]
