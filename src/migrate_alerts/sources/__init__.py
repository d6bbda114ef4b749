# SPDX-License-Identifier: MIT
# src/migrate_alerts/sources/__init__.py
"""
Page sources that produce raw migration observations.
"""


class FetchError(RuntimeError):
    """The page could not be loaded; the state of migrations is unknown."""
