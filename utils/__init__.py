"""Shared utilities for the backend."""
from utils.json_text import parse_json_object

__all__ = [
    "parse_json_object",
]
