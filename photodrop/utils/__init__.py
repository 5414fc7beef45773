"""Utilities for photodrop."""
from .events import EventEmitter

__all__ = ["EventEmitter"]
