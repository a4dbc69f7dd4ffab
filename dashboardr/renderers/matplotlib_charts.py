"""
Matplotlib renderers - static counterparts of the plotly charts.

Each renderer builds one detached ``matplotlib.figure.Figure`` and returns
it.  The figure is never registered with pyplot, so repeated calls leave no
open figures behind; saving is left to the caller.
"""

import logging

from matplotlib.colors import LinearSegmentedColormap
from matplotlib.figure import Figure
import numpy as np

from ..core.config import FIGURE_DPI, FIGURE_SIZE, PERCENT_DECIMALS
from ..models.data_models import ChartConfig
from .styling import axis_labels, format_cell, format_value, resolve_colors, single_color

logger = logging.getLogger(__name__)


def _new_figure(config: ChartConfig):
    size = FIGURE_SIZE
    if config.display.height is not None:
        size = (FIGURE_SIZE[0], config.display.height / FIGURE_DPI)
    fig = Figure(figsize=size, dpi=FIGURE_DPI)
    return fig, fig.subplots()


def finish_figure(fig, ax, config: ChartConfig, x_label=None, y_label=None, legend=False):
    display = config.display
    if display.title:
        fig.suptitle(display.title, fontweight='bold')
    if display.subtitle:
        ax.set_title(display.subtitle, fontsize=10, color='#666666')
    if x_label is not None:
        ax.set_xlabel(x_label)
    if y_label is not None:
        ax.set_ylabel(y_label)
    if legend and display.show_legend:
        loc = {'bottom': 'upper center', 'top': 'lower center'}.get(display.legend_position, 'best')
        anchor = {'bottom': (0.5, -0.15), 'top': (0.5, 1.02)}.get(display.legend_position)
        ax.legend(title=display.legend_title, loc=loc, bbox_to_anchor=anchor, frameon=False)
    ax.spines[['top', 'right']].set_visible(False)
    fig.tight_layout()
    return fig


def _bars(config: ChartConfig, stacked: bool):
    result = config.result
    display = config.display
    horizontal = getattr(display, 'horizontal', False)
    data_labels = getattr(display, 'data_labels', True)
    categories = list(result.categories)
    positions = np.arange(len(categories))
    fig, ax = _new_figure(config)

    if result.is_grouped:
        series = [(grp, np.asarray(result.series(grp), dtype=float)) for grp in result.groups]
        colors = resolve_colors(display.palette, list(result.groups))
    else:
        series = [(config.y_label, np.asarray(result.series(), dtype=float))]
        colors = [single_color(display.palette)]

    width = 0.8 if stacked or len(series) == 1 else 0.8 / len(series)
    base = np.zeros(len(categories))
    for i, ((name, values), color) in enumerate(zip(series, colors)):
        offset = 0 if stacked or len(series) == 1 else (i - (len(series) - 1) / 2) * width
        if horizontal:
            bars = ax.barh(positions + offset, values, height=width, left=base if stacked else None,
                           color=color, label=str(name))
        else:
            bars = ax.bar(positions + offset, values, width=width, bottom=base if stacked else None,
                          color=color, label=str(name))
        if data_labels:
            labels = [format_value(v, result.mode) if v else "" for v in values]
            ax.bar_label(bars, labels=labels, label_type='center' if stacked else 'edge', fontsize=8)
        if stacked:
            base = base + values

    if horizontal:
        ax.set_yticks(positions, categories)
        ax.invert_yaxis()
    else:
        ax.set_xticks(positions, categories, rotation=45 if len(categories) > 6 else 0,
                      ha='right' if len(categories) > 6 else 'center')
    x_label, y_label = axis_labels(config, horizontal)
    return finish_figure(fig, ax, config, x_label, y_label, legend=result.is_grouped)


def render_histogram(config: ChartConfig):
    return _bars(config, stacked=False)


def render_bar(config: ChartConfig):
    return _bars(config, stacked=False)


def render_stackedbar(config: ChartConfig):
    return _bars(config, stacked=True)


def render_boxplot(config: ChartConfig):
    result = config.result
    display = config.display
    categories = list(result.categories)
    colors = resolve_colors(display.palette, categories)
    fig, ax = _new_figure(config)

    stats, positions, face_colors = [], [], []
    for i, cat in enumerate(categories):
        summary = result.summaries[cat]
        if summary.is_empty:
            continue
        stats.append({
            'label': cat,
            'whislo': summary.low, 'q1': summary.q1, 'med': summary.median,
            'q3': summary.q3, 'whishi': summary.high,
            'fliers': list(summary.outliers),
        })
        positions.append(i)
        face_colors.append(colors[i])

    if stats:
        boxes = ax.bxp(
            stats, positions=positions, showfliers=display.show_outliers, patch_artist=True,
            orientation='horizontal' if display.horizontal else 'vertical',
        )
        for patch, color in zip(boxes['boxes'], face_colors):
            patch.set_facecolor(color)
            patch.set_alpha(0.7)

    ticks = np.arange(len(categories))
    if display.horizontal:
        ax.set_yticks(ticks, categories)
        ax.invert_yaxis()
    else:
        ax.set_xticks(ticks, categories)
    x_label, y_label = axis_labels(config, display.horizontal)
    return finish_figure(fig, ax, config, x_label, y_label)


def render_scatter(config: ChartConfig):
    points = config.points
    display = config.display
    fig, ax = _new_figure(config)

    sizes = display.point_size ** 2
    if 'size' in points.columns:
        size = points['size'].astype(float)
        span = size.max() - size.min()
        if span > 0:
            sizes = ((display.point_size * (1 + 3 * (size - size.min()) / span)) ** 2).to_numpy()

    if 'color' in points.columns:
        levels = [str(c) for c in points['color'].cat.categories]
        for level, color in zip(levels, resolve_colors(display.palette, levels)):
            mask = (points['color'].astype(str) == level).to_numpy()
            ax.scatter(points.loc[mask, 'x'], points.loc[mask, 'y'], color=color, alpha=display.alpha,
                       s=sizes[mask] if isinstance(sizes, np.ndarray) else sizes, label=level)
    else:
        ax.scatter(points['x'], points['y'], color=single_color(display.palette), alpha=display.alpha, s=sizes)

    if 'trend' in points.columns:
        line = points[['x', 'trend']].dropna().sort_values('x')
        ax.plot(line['x'], line['trend'], color='#333333', linestyle='--', linewidth=1.5,
                label=f"Trend ({display.trend_method})")

    return finish_figure(fig, ax, config, config.x_label, config.y_label,
                         legend='color' in points.columns or 'trend' in points.columns)


def render_lollipop(config: ChartConfig):
    result = config.result
    display = config.display
    categories = list(result.categories)
    positions = np.arange(len(categories))
    fig, ax = _new_figure(config)

    if result.is_grouped:
        series = [(grp, result.series(grp)) for grp in result.groups]
        colors = resolve_colors(display.palette, list(result.groups))
    else:
        series = [(config.y_label, result.series())]
        colors = [single_color(display.palette)]

    step = 0.6 / len(series) if len(series) > 1 else 0
    for i, ((name, values), color) in enumerate(zip(series, colors)):
        pos = positions + (i - (len(series) - 1) / 2) * step
        values = np.asarray(values, dtype=float)
        if display.horizontal:
            ax.hlines(pos, 0, values, color=color, linewidth=display.stem_width)
            ax.scatter(values, pos, color=color, s=display.dot_size ** 2, zorder=3, label=str(name))
        else:
            ax.vlines(pos, 0, values, color=color, linewidth=display.stem_width)
            ax.scatter(pos, values, color=color, s=display.dot_size ** 2, zorder=3, label=str(name))
        if display.data_labels:
            for p, v in zip(pos, values):
                xy = (v, p) if display.horizontal else (p, v)
                offset = (6, 0) if display.horizontal else (0, 6)
                ax.annotate(format_value(v, result.mode), xy, xytext=offset, textcoords='offset points',
                            va='center' if display.horizontal else 'bottom', fontsize=8)

    if display.horizontal:
        ax.set_yticks(positions, categories)
        ax.invert_yaxis()
    else:
        ax.set_xticks(positions, categories)
    x_label, y_label = axis_labels(config, display.horizontal)
    return finish_figure(fig, ax, config, x_label, y_label, legend=result.is_grouped)


def render_dumbbell(config: ChartConfig):
    result = config.result
    display = config.display
    categories = list(result.categories)
    positions = np.arange(len(categories))
    low_group, high_group = result.groups
    lows = np.asarray(result.series(low_group), dtype=float)
    highs = np.asarray(result.series(high_group), dtype=float)
    fig, ax = _new_figure(config)

    if display.horizontal:
        ax.hlines(positions, lows, highs, color=display.connector_color, linewidth=display.connector_width)
        ax.scatter(lows, positions, color=display.low_color, s=(display.dot_size * 2) ** 2, zorder=3,
                   label=display.low_label)
        ax.scatter(highs, positions, color=display.high_color, s=(display.dot_size * 2) ** 2, zorder=3,
                   label=display.high_label)
        ax.set_yticks(positions, categories)
        ax.invert_yaxis()
    else:
        ax.vlines(positions, lows, highs, color=display.connector_color, linewidth=display.connector_width)
        ax.scatter(positions, lows, color=display.low_color, s=(display.dot_size * 2) ** 2, zorder=3,
                   label=display.low_label)
        ax.scatter(positions, highs, color=display.high_color, s=(display.dot_size * 2) ** 2, zorder=3,
                   label=display.high_label)
        ax.set_xticks(positions, categories)

    if display.data_labels:
        for p, lo, hi in zip(positions, lows, highs):
            for v in (lo, hi):
                xy = (v, p) if display.horizontal else (p, v)
                ax.annotate(format_value(v), xy, xytext=(0, 8), textcoords='offset points',
                            ha='center', fontsize=8)

    x_label, y_label = axis_labels(config, display.horizontal)
    return finish_figure(fig, ax, config, x_label, y_label, legend=True)


def render_funnel(config: ChartConfig):
    result = config.result
    display = config.display
    stages = list(result.categories)
    values = np.asarray(result.series(), dtype=float)
    if display.reversed:
        stages, values = stages[::-1], values[::-1]
    positions = np.arange(len(stages))
    fig, ax = _new_figure(config)

    ax.barh(positions, values, left=-values / 2, color=resolve_colors(display.palette, stages), height=0.8)
    if display.data_labels:
        first = values[0] if len(values) and values[0] else np.nan
        for p, v in zip(positions, values):
            text = format_value(v)
            if display.show_conversion and not np.isnan(first):
                text += f" ({v / first:.1%})"
            ax.text(0, p, text, ha='center', va='center', color='white', fontweight='bold')

    ax.set_yticks(positions, stages)
    ax.invert_yaxis()
    ax.set_xticks([])
    ax.spines[['left', 'bottom']].set_visible(False)
    return finish_figure(fig, ax, config)


def render_pie(config: ChartConfig):
    result = config.result
    display = config.display
    labels = list(result.categories)
    colors = resolve_colors(display.palette, labels)
    values = np.asarray(result.series(), dtype=float)
    fig, ax = _new_figure(config)

    # zero slices cannot be drawn
    keep = [i for i, v in enumerate(values) if v > 0]
    if not keep:
        logger.warning("Pie chart has no non-zero slices")
        ax.set_axis_off()
        return finish_figure(fig, ax, config)

    ax.pie(
        values[keep],
        labels=[labels[i] for i in keep],
        colors=[colors[i] for i in keep],
        autopct=f'%1.{PERCENT_DECIMALS}f%%' if display.data_labels else None,
        labeldistance=1.1 if display.data_labels else None,
        startangle=90,
        counterclock=False,
        wedgeprops=dict(width=1 - display.inner_size, edgecolor='white') if display.is_donut else None,
    )
    if display.is_donut and display.center_text:
        ax.text(0, 0, display.center_text, ha='center', va='center', fontsize=14, fontweight='bold')
    ax.set_aspect('equal')
    return finish_figure(fig, ax, config, legend=display.show_in_legend)


def heatmap_colormap(display) -> LinearSegmentedColormap:
    """Colormap from the display's low-to-high color list."""
    scale = list(display.color_scale)
    if len(scale) == 1:
        scale = scale * 2
    cmap = LinearSegmentedColormap.from_list('dashboardr_heatmap', scale)
    cmap.set_bad(display.na_color if display.na_color is not None else (0, 0, 0, 0))
    return cmap


def heatmap_matrix(config: ChartConfig) -> np.ndarray:
    """Cell values with one row per y category and one column per x category."""
    result = config.result
    return np.asarray(
        [[result.values[(x, y)] for x in result.categories] for y in result.groups],
        dtype=float,
    )


def render_heatmap(config: ChartConfig):
    result = config.result
    display = config.display
    matrix = heatmap_matrix(config)
    fig, ax = _new_figure(config)

    image = ax.imshow(np.ma.masked_invalid(matrix), cmap=heatmap_colormap(display),
                      vmin=display.color_min, vmax=display.color_max, aspect='auto')
    if display.data_labels:
        for i, row in enumerate(matrix):
            for j, value in enumerate(row):
                ax.text(j, i, format_cell(value, display.label_decimals), ha='center', va='center', fontsize=8)
    if display.show_legend:
        fig.colorbar(image, ax=ax, label=display.legend_title)

    ax.set_xticks(np.arange(len(result.categories)), list(result.categories),
                  rotation=45 if len(result.categories) > 6 else 0)
    ax.set_yticks(np.arange(len(result.groups)), list(result.groups))
    return finish_figure(fig, ax, config, config.x_label, config.y_label)


def render_timeline(config: ChartConfig):
    result = config.result
    display = config.display
    times = list(result.categories)
    names = [str(name) for name in result.groups]
    colors = resolve_colors(display.palette, names)
    positions = np.arange(len(times))
    series = [np.asarray(result.series(name), dtype=float) for name in result.groups]
    fig, ax = _new_figure(config)

    if display.stacked:
        # a time point without responses shows as a gap of zero height
        ax.stackplot(positions, *[np.nan_to_num(values) for values in series],
                     labels=names, colors=colors, alpha=0.85)
        ax.set_ylim(0, 100)
    else:
        marker = 'o' if display.show_markers else None
        for name, values, color in zip(names, series, colors):
            ax.plot(positions, values, marker=marker, color=color, linewidth=display.line_width, label=name)

    ax.set_xticks(positions, times, rotation=45 if len(times) > 8 else 0)
    return finish_figure(fig, ax, config, config.x_label, config.y_label, legend=True)
