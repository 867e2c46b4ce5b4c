"""Observability helpers."""

from .logging import get_logger, mask_secret

__all__ = ["get_logger", "mask_secret"]
