"""
Overhead status panel
"""

from .overhead_panel import OverheadPanel, PanelLayout, TITLE

__all__ = [
    "OverheadPanel",
    "PanelLayout",
    "TITLE",
]
