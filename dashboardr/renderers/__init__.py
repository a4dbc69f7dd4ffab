"""
Rendering backends: plotly, matplotlib and seaborn adapters.
"""

from . import matplotlib_charts, plotly_charts, seaborn_charts
from .styling import format_value, resolve_colors, single_color

__all__ = [
    'plotly_charts',
    'matplotlib_charts',
    'seaborn_charts',
    'resolve_colors',
    'single_color',
    'format_value',
]
