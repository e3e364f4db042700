"""Naver Place listing extraction and diagnosis service."""

__version__ = "0.1.0"
