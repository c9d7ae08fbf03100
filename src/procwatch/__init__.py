"""procwatch - live monitor for a fleet of asynchronous task worker processes."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
