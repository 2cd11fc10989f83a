"""Sync Sprout Social group analytics into Google Sheets."""

__version__ = "0.1.0"
