"""Infra layer utilities (selection persistence)."""

from .storage import SelectionStore

__all__ = ["SelectionStore"]
