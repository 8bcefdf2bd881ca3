"""Adapters that feed third-party logging frameworks into logbull."""

from .stdlib import LogBullHandler

__all__ = ["LogBullHandler"]
