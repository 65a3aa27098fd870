"""Textual interface for dustpan."""

from dustpan.tui.app import DustpanApp, run_tui

__all__ = ["DustpanApp", "run_tui"]
