# SPDX-License-Identifier: MIT
# src/migrate_alerts/__init__.py
__version__ = "0.1.0"
