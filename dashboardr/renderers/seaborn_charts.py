"""
Seaborn renderers for the chart types seaborn draws natively.

Seaborn would happily aggregate raw rows itself; here it is handed the
already aggregated long frame so that recoding, binning, NA handling and
ordering stay identical across backends.
"""

import logging

from matplotlib.figure import Figure
import numpy as np
import pandas as pd
import seaborn as sns

from ..core.config import FIGURE_DPI, FIGURE_SIZE
from ..models.data_models import ChartConfig
from .matplotlib_charts import finish_figure, heatmap_colormap, heatmap_matrix
from .styling import axis_labels, format_cell, format_value, resolve_colors, single_color

logger = logging.getLogger(__name__)


def _new_figure(config: ChartConfig):
    size = FIGURE_SIZE
    if config.display.height is not None:
        size = (FIGURE_SIZE[0], config.display.height / FIGURE_DPI)
    fig = Figure(figsize=size, dpi=FIGURE_DPI)
    with sns.axes_style("whitegrid"):
        return fig, fig.subplots()


def _barplot(config: ChartConfig, gap: float):
    result = config.result
    display = config.display
    horizontal = display.horizontal
    frame = result.to_frame()
    categories = list(result.categories)
    fig, ax = _new_figure(config)

    axes = dict(x='value', y='category') if horizontal else dict(x='category', y='value')
    if result.is_grouped:
        groups = list(result.groups)
        sns.barplot(data=frame, hue='group', order=categories, hue_order=groups,
                    palette=resolve_colors(display.palette, groups), ax=ax, width=1 - gap, errorbar=None, **axes)
    else:
        sns.barplot(data=frame, order=categories, color=single_color(display.palette),
                    ax=ax, width=1 - gap, errorbar=None, **axes)

    if display.data_labels:
        for container in ax.containers:
            values = container.datavalues
            ax.bar_label(container, labels=[format_value(v, result.mode) if v else "" for v in values],
                         fontsize=8)

    x_label, y_label = axis_labels(config, horizontal)
    fig = finish_figure(fig, ax, config, x_label, y_label, legend=result.is_grouped)
    if ax.get_legend() is not None and not (result.is_grouped and display.show_legend):
        ax.get_legend().remove()
    return fig


def render_histogram(config: ChartConfig):
    return _barplot(config, gap=0.02)


def render_bar(config: ChartConfig):
    return _barplot(config, gap=0.2)


def render_scatter(config: ChartConfig):
    points = config.points
    display = config.display
    fig, ax = _new_figure(config)

    options = dict(data=points, x='x', y='y', alpha=display.alpha, ax=ax)
    if 'color' in points.columns:
        levels = [str(c) for c in points['color'].cat.categories]
        options.update(hue='color', hue_order=levels, palette=resolve_colors(display.palette, levels))
    else:
        options.update(color=single_color(display.palette))
    if 'size' in points.columns:
        options.update(size='size', sizes=(display.point_size ** 2, (display.point_size * 4) ** 2))
    else:
        options.update(s=display.point_size ** 2)
    sns.scatterplot(**options)

    if 'trend' in points.columns:
        line = points[['x', 'trend']].dropna().sort_values('x')
        ax.plot(line['x'], line['trend'], color='#333333', linestyle='--', linewidth=1.5,
                label=f"Trend ({display.trend_method})")

    has_legend = 'color' in points.columns or 'size' in points.columns or 'trend' in points.columns
    fig = finish_figure(fig, ax, config, config.x_label, config.y_label, legend=has_legend)
    return fig


def render_heatmap(config: ChartConfig):
    result = config.result
    display = config.display
    matrix = heatmap_matrix(config)
    frame = pd.DataFrame(matrix, index=list(result.groups), columns=list(result.categories))
    fig, ax = _new_figure(config)

    annot = None
    if display.data_labels:
        annot = np.asarray([[format_cell(v, display.label_decimals) for v in row] for row in matrix])
    sns.heatmap(frame, ax=ax, cmap=heatmap_colormap(display),
                vmin=display.color_min, vmax=display.color_max,
                annot=annot, fmt='', linewidths=1, linecolor='white',
                cbar=display.show_legend, cbar_kws={'label': display.legend_title})
    return finish_figure(fig, ax, config, config.x_label, config.y_label)
