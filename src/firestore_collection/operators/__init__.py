"""Firestore appliers for query predicates."""

from __future__ import annotations

from .filters import apply_filter
from .structural import apply_limit, apply_order_by

__all__ = [
    "apply_filter",
    "apply_limit",
    "apply_order_by",
]
