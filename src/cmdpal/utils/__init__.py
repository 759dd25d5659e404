"""Shared utilities for cmdpal.

Contains cross-cutting utilities used by multiple modules.
"""

from cmdpal.utils.time import format_timestamp, parse_timestamp, utc_now

__all__ = ["format_timestamp", "parse_timestamp", "utc_now"]
