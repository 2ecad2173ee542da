from __future__ import annotations

from ui.summary import print_summary, render_summary

__all__ = ["print_summary", "render_summary"]
