"""
Chart functions built on the chart data pipeline.
"""

from .basic_charts import viz_bar, viz_boxplot, viz_histogram, viz_scatter, viz_stackedbar
from .advanced_charts import (
    viz_dumbbell,
    viz_funnel,
    viz_gauge,
    viz_lollipop,
    viz_map,
    viz_treemap,
)
from .composition_charts import viz_heatmap, viz_pie, viz_timeline

__all__ = [
    'viz_histogram',
    'viz_bar',
    'viz_stackedbar',
    'viz_boxplot',
    'viz_scatter',
    'viz_lollipop',
    'viz_dumbbell',
    'viz_funnel',
    'viz_treemap',
    'viz_map',
    'viz_gauge',
    'viz_pie',
    'viz_heatmap',
    'viz_timeline',
]
