"""Core utility functions."""

from core.utils.json_serializers import dumps, json_serializer

__all__ = ["json_serializer", "dumps"]
