"""Rivalscope: public-web evidence pipeline for competitor profiling."""

from __future__ import annotations

__version__ = "0.1.0"
