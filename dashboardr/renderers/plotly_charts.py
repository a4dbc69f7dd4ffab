"""
Plotly renderers - one function per chart type, each returning a go.Figure.

Renderers only translate a ChartConfig into traces and layout; every
validation, recoding and aggregation step has already run in the pipeline.
"""

import logging
from typing import Dict, List

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from ..models.data_models import AggregationMode, ChartConfig
from .styling import format_cell, format_value, resolve_colors, single_color, tooltip_value

logger = logging.getLogger(__name__)


def create_plotly_theme():
    """Get consistent Plotly theme settings."""
    return dict(
        paper_bgcolor='white',
        plot_bgcolor='white',
        font=dict(family='Inter, Arial, sans-serif', color='#333333'),
        margin=dict(l=40, r=40, t=60, b=40),
    )


def _title(display) -> Dict:
    if not display.title and not display.subtitle:
        return {}
    text = display.title or ""
    if display.subtitle:
        text += f'<br><span style="font-size:13px;color:#666666">{display.subtitle}</span>'
    return dict(title=dict(text=text, font=dict(size=18)))


def _legend(display) -> Dict:
    if not display.show_legend:
        return dict(showlegend=False)
    legend = {}
    if display.legend_title is not None:
        legend['title'] = dict(text=display.legend_title)
    if display.legend_position == 'bottom':
        legend.update(orientation='h', x=0.5, xanchor='center', y=-0.2)
    elif display.legend_position == 'top':
        legend.update(orientation='h', x=0.5, xanchor='center', y=1.1)
    return dict(legend=legend) if legend else {}


def _layout(fig: go.Figure, config: ChartConfig, x_title=None, y_title=None, **extra) -> go.Figure:
    display = config.display
    layout = dict(**create_plotly_theme())
    layout.update(_title(display))
    layout.update(_legend(display))
    if x_title is not None:
        layout['xaxis_title'] = x_title
    if y_title is not None:
        layout['yaxis_title'] = y_title
    if display.height is not None:
        layout['height'] = display.height
    layout.update(extra)
    fig.update_layout(**layout)
    return fig


def _hover(config: ChartConfig, horizontal: bool = False, series_name: bool = False) -> str:
    display = config.display
    cat, val = ('%{y}', '%{x}') if horizontal else ('%{x}', '%{y}')
    head = f"<b>{cat}{display.x_tooltip_suffix}</b>"
    if series_name:
        head += "<br>%{fullData.name}"
    suffix = "%" if config.result is not None and config.result.mode is AggregationMode.PERCENT else ""
    body = f"{config.y_label}: {display.tooltip_prefix}{val}{suffix}{display.tooltip_suffix}"
    return f"{head}<br>{body}<extra></extra>"


def _bar_traces(config: ChartConfig, barmode: str) -> go.Figure:
    result = config.result
    display = config.display
    horizontal = getattr(display, 'horizontal', False)
    data_labels = getattr(display, 'data_labels', True)
    categories = list(result.categories)
    fig = go.Figure()

    if result.is_grouped:
        series = [(grp, result.series(grp)) for grp in result.groups]
        colors = resolve_colors(display.palette, list(result.groups))
    else:
        series = [(config.y_label, result.series())]
        colors = [single_color(display.palette)]

    for (name, values), color in zip(series, colors):
        text = [format_value(v, result.mode) for v in values] if data_labels else None
        axes = dict(x=values, y=categories, orientation='h') if horizontal else dict(x=categories, y=values)
        fig.add_trace(go.Bar(
            name=str(name),
            marker=dict(color=color),
            text=text,
            textposition='inside' if barmode == 'stack' else 'outside',
            hovertemplate=_hover(config, horizontal, series_name=result.is_grouped),
            showlegend=result.is_grouped,
            **axes,
        ))

    x_title, y_title = (config.y_label, config.x_label) if horizontal else (config.x_label, config.y_label)
    extra = dict(barmode=barmode)
    if horizontal:
        extra['yaxis'] = dict(autorange='reversed', categoryorder='array', categoryarray=categories)
    else:
        extra['xaxis'] = dict(categoryorder='array', categoryarray=categories)
    return _layout(fig, config, x_title, y_title, **extra)


def render_histogram(config: ChartConfig) -> go.Figure:
    fig = _bar_traces(config, barmode='group')
    fig.update_layout(bargap=0.05)
    return fig


def render_bar(config: ChartConfig) -> go.Figure:
    return _bar_traces(config, barmode='group')


def render_stackedbar(config: ChartConfig) -> go.Figure:
    return _bar_traces(config, barmode='stack')


def render_boxplot(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    horizontal = display.horizontal
    colors = resolve_colors(display.palette, list(result.categories))
    fig = go.Figure()

    for cat, color in zip(result.categories, colors):
        summary = result.summaries[cat]
        if summary.is_empty:
            continue
        position = dict(y=[cat], orientation='h') if horizontal else dict(x=[cat])
        fig.add_trace(go.Box(
            name=cat,
            q1=[summary.q1], median=[summary.median], q3=[summary.q3],
            lowerfence=[summary.low], upperfence=[summary.high],
            marker=dict(color=color),
            boxpoints=False,
            showlegend=False,
            **position,
        ))
        if display.show_outliers and summary.outliers:
            outliers = list(summary.outliers)
            points = dict(x=outliers, y=[cat] * len(outliers)) if horizontal else dict(x=[cat] * len(outliers), y=outliers)
            fig.add_trace(go.Scatter(
                mode='markers', name=f"{cat} outliers",
                marker=dict(color=color, size=6, symbol='circle-open'),
                hovertemplate=f"<b>{cat}</b><br>{tooltip_value(display, '%{' + ('x' if horizontal else 'y') + '}')}<extra></extra>",
                showlegend=False,
                **points,
            ))

    x_title, y_title = (config.y_label, config.x_label) if horizontal else (config.x_label, config.y_label)
    return _layout(fig, config, x_title, y_title)


def render_scatter(config: ChartConfig) -> go.Figure:
    points = config.points
    display = config.display
    fig = go.Figure()

    if 'size' in points.columns:
        size = points['size'].astype(float)
        span = size.max() - size.min()
        sizes = (display.point_size * (1 + 3 * (size - size.min()) / span)).to_numpy() if span > 0 else display.point_size
    else:
        sizes = display.point_size

    hover = (f"{config.x_label}: %{{x}}{display.x_tooltip_suffix}<br>"
             f"{config.y_label}: {tooltip_value(display, '%{y}')}<extra></extra>")

    if 'color' in points.columns:
        if isinstance(points['color'].dtype, pd.CategoricalDtype):
            levels = [str(c) for c in points['color'].cat.categories]
        else:
            levels = list(dict.fromkeys(points['color'].astype(str)))
        colors = resolve_colors(display.palette, levels)
        for level, color in zip(levels, colors):
            mask = (points['color'].astype(str) == level).to_numpy()
            fig.add_trace(go.Scatter(
                x=points.loc[mask, 'x'], y=points.loc[mask, 'y'], mode='markers', name=level,
                marker=dict(color=color, opacity=display.alpha,
                            size=sizes[mask] if not np.isscalar(sizes) else sizes),
                hovertemplate=hover,
            ))
    else:
        fig.add_trace(go.Scatter(
            x=points['x'], y=points['y'], mode='markers', name=config.y_label,
            marker=dict(color=single_color(display.palette), opacity=display.alpha, size=sizes),
            hovertemplate=hover, showlegend=False,
        ))

    if 'trend' in points.columns:
        line = points[['x', 'trend']].dropna().sort_values('x')
        fig.add_trace(go.Scatter(
            x=line['x'], y=line['trend'], mode='lines', name=f"Trend ({display.trend_method})",
            line=dict(color='#333333', width=2, dash='dash'),
            hoverinfo='skip',
        ))

    return _layout(fig, config, config.x_label, config.y_label)


def render_lollipop(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    horizontal = display.horizontal
    categories = list(result.categories)
    fig = go.Figure()

    if result.is_grouped:
        series = [(grp, result.series(grp)) for grp in result.groups]
        colors = resolve_colors(display.palette, list(result.groups))
    else:
        series = [(config.y_label, result.series())]
        colors = [single_color(display.palette)]

    for (name, values), color in zip(series, colors):
        stem_x: List = []
        stem_y: List = []
        for cat, value in zip(categories, values):
            if horizontal:
                stem_x += [0, value, None]
                stem_y += [cat, cat, None]
            else:
                stem_x += [cat, cat, None]
                stem_y += [0, value, None]
        fig.add_trace(go.Scatter(
            x=stem_x, y=stem_y, mode='lines', line=dict(color=color, width=display.stem_width),
            hoverinfo='skip', showlegend=False,
        ))
        dots = dict(x=values, y=categories) if horizontal else dict(x=categories, y=values)
        fig.add_trace(go.Scatter(
            mode='markers+text' if display.data_labels else 'markers',
            name=str(name),
            marker=dict(color=color, size=display.dot_size),
            text=[format_value(v, result.mode) for v in values] if display.data_labels else None,
            textposition='middle right' if horizontal else 'top center',
            hovertemplate=_hover(config, horizontal, series_name=result.is_grouped),
            showlegend=result.is_grouped,
            **dots,
        ))

    x_title, y_title = (config.y_label, config.x_label) if horizontal else (config.x_label, config.y_label)
    extra = {}
    if horizontal:
        extra['yaxis'] = dict(autorange='reversed', categoryorder='array', categoryarray=categories)
    else:
        extra['xaxis'] = dict(categoryorder='array', categoryarray=categories)
    return _layout(fig, config, x_title, y_title, **extra)


def render_dumbbell(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    horizontal = display.horizontal
    categories = list(result.categories)
    low_group, high_group = result.groups
    lows = result.series(low_group)
    highs = result.series(high_group)
    fig = go.Figure()

    seg_a: List = []
    seg_b: List = []
    for cat, lo, hi in zip(categories, lows, highs):
        if np.isnan(lo) or np.isnan(hi):
            continue
        if horizontal:
            seg_a += [lo, hi, None]
            seg_b += [cat, cat, None]
        else:
            seg_a += [cat, cat, None]
            seg_b += [lo, hi, None]
    fig.add_trace(go.Scatter(
        mode='lines', line=dict(color=display.connector_color, width=display.connector_width),
        hoverinfo='skip', showlegend=False, x=seg_a, y=seg_b,
    ))

    for name, values, color in ((display.low_label, lows, display.low_color),
                                (display.high_label, highs, display.high_color)):
        dots = dict(x=values, y=categories) if horizontal else dict(x=categories, y=values)
        fig.add_trace(go.Scatter(
            mode='markers+text' if display.data_labels else 'markers',
            name=name,
            marker=dict(color=color, size=display.dot_size * 2),
            text=[format_value(v) for v in values] if display.data_labels else None,
            textposition='top center',
            hovertemplate=_hover(config, horizontal, series_name=True),
            **dots,
        ))

    x_title, y_title = (config.y_label, config.x_label) if horizontal else (config.x_label, config.y_label)
    extra = {}
    if horizontal:
        extra['yaxis'] = dict(autorange='reversed', categoryorder='array', categoryarray=categories)
    return _layout(fig, config, x_title, y_title, **extra)


def render_funnel(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    stages = list(result.categories)
    values = result.series()
    if display.reversed:
        stages, values = stages[::-1], values[::-1]

    textinfo = 'value+percent initial' if display.show_conversion else 'value'
    fig = go.Figure(go.Funnel(
        y=stages,
        x=values,
        textinfo=textinfo if display.data_labels else 'none',
        marker=dict(color=resolve_colors(display.palette, stages)),
        hovertemplate=(f"<b>%{{y}}</b><br>{config.y_label}: {tooltip_value(display, '%{x}')}"
                       f"<br>Of first stage: %{{percentInitial:.1%}}<extra></extra>"),
    ))
    return _layout(fig, config)


def render_treemap(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    ids, labels, parents, values = [], [], [], []

    for cat in result.categories:
        if result.is_grouped:
            children = [(grp, result.values[(cat, grp)]) for grp in result.groups]
            children = [(grp, v) for grp, v in children if v and not np.isnan(v)]
            total = sum(v for _, v in children)
        else:
            children = []
            total = result.values[cat]
        if not total or np.isnan(total):
            continue
        ids.append(cat)
        labels.append(cat)
        parents.append('')
        values.append(total)
        for grp, value in children:
            ids.append(f"{cat}/{grp}")
            labels.append(grp)
            parents.append(cat)
            values.append(value)

    top_colors = dict(zip(result.categories, resolve_colors(display.palette, list(result.categories))))
    colors = [top_colors[i] if p == '' else top_colors[p] for i, p in zip(ids, parents)]

    fig = go.Figure(go.Treemap(
        ids=ids,
        labels=labels,
        parents=parents,
        values=values,
        branchvalues='total',
        textinfo='label+value+percent parent' if display.show_labels else 'none',
        marker=dict(colors=colors),
        hovertemplate=f"<b>%{{label}}</b><br>{config.y_label}: {tooltip_value(display, '%{value}')}<extra></extra>",
        pathbar=dict(visible=True),
    ))
    return _layout(fig, config)


def render_map(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    locations = [cat for cat in result.categories if not np.isnan(result.values[cat])]
    z = [result.values[cat] for cat in locations]
    scale = list(display.color_scale)
    if len(scale) == 1:
        scale = scale * 2
    colorscale = [[i / (len(scale) - 1), color] for i, color in enumerate(scale)]

    fig = go.Figure(go.Choropleth(
        locations=locations,
        z=z,
        locationmode=display.location_mode,
        colorscale=colorscale,
        marker_line_color='white',
        colorbar=dict(title=display.legend_title or config.y_label),
        showscale=display.show_legend,
        hovertemplate=f"<b>%{{location}}</b><br>{config.y_label}: {tooltip_value(display, '%{z}')}<extra></extra>",
    ))
    geo = dict(showframe=False, showcoastlines=False, showland=True, landcolor=display.na_color,
               projection_type='natural earth')
    if display.map_type == 'usa':
        geo = dict(scope='usa', showland=True, landcolor=display.na_color)
    return _layout(fig, config, geo=geo)


def render_gauge(config: ChartConfig) -> go.Figure:
    display = config.display
    value = config.result.values[config.result.categories[0]]

    gauge = {
        'axis': {'range': [display.min_value, display.max_value], 'tickwidth': 1},
        'bar': {'color': display.color},
        'bgcolor': display.background_color,
        'steps': [{'range': [band.start, band.end], 'color': band.color} for band in display.bands],
    }
    if display.target is not None:
        gauge['threshold'] = {
            'line': {'color': display.target_color, 'width': 4},
            'thickness': 0.75,
            'value': display.target,
        }

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=value,
        number={'prefix': display.tooltip_prefix, 'suffix': display.tooltip_suffix, 'font': {'size': 40}},
        gauge=gauge,
    ))
    return _layout(fig, config)


def render_pie(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    labels = list(result.categories)

    fig = go.Figure(go.Pie(
        labels=labels,
        values=result.series(),
        hole=display.inner_size,
        sort=False,
        direction='clockwise',
        marker=dict(colors=resolve_colors(display.palette, labels)),
        textinfo='label+percent' if display.data_labels else 'none',
        showlegend=display.show_in_legend,
        hovertemplate=(f"<b>%{{label}}</b><br>{config.y_label}: {tooltip_value(display, '%{value}')}"
                       f"<br>%{{percent}} of total<extra></extra>"),
    ))
    if display.is_donut and display.center_text:
        fig.add_annotation(
            text=f"<b>{display.center_text}</b>",
            x=0.5, y=0.5,
            font=dict(size=18),
            showarrow=False,
        )
    return _layout(fig, config)


def render_heatmap(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    columns, rows = list(result.categories), list(result.groups)
    z = [[result.values[(x, y)] for x in columns] for y in rows]
    z = [[None if np.isnan(v) else v for v in row] for row in z]
    text = [[format_cell(v, display.label_decimals) for v in row] for row in z]

    scale = list(display.color_scale)
    if len(scale) == 1:
        scale = scale * 2
    heatmap = dict(
        z=z,
        x=columns,
        y=rows,
        colorscale=[[i / (len(scale) - 1), color] for i, color in enumerate(scale)],
        zmin=display.color_min,
        zmax=display.color_max,
        xgap=1,
        ygap=1,
        colorbar=dict(title=display.legend_title),
        showscale=display.show_legend,
        hovertemplate=(f"<b>%{{x}}{display.x_tooltip_suffix}</b><br>%{{y}}{display.y_tooltip_suffix}"
                       f"<br>{display.legend_title}: {tooltip_value(display, '%{z}')}<extra></extra>"),
    )
    if display.data_labels:
        heatmap.update(text=text, texttemplate='%{text}')
    fig = go.Figure(go.Heatmap(**heatmap))

    extra = dict(
        xaxis=dict(type='category', categoryorder='array', categoryarray=columns),
        yaxis=dict(type='category', categoryorder='array', categoryarray=rows, autorange='reversed'),
    )
    if display.na_color is not None:
        extra['plot_bgcolor'] = display.na_color
    return _layout(fig, config, config.x_label, config.y_label, **extra)


def render_timeline(config: ChartConfig) -> go.Figure:
    result = config.result
    display = config.display
    times = list(result.categories)
    colors = resolve_colors(display.palette, list(result.groups))
    mode = 'lines+markers' if display.show_markers else 'lines'
    fig = go.Figure()

    for name, color in zip(result.groups, colors):
        values = [None if np.isnan(v) else v for v in result.series(name)]
        trace = dict(
            x=times,
            y=values,
            name=str(name),
            mode=mode,
            line=dict(color=color, width=display.line_width),
            hovertemplate=(f"<b>%{{x}}</b><br>%{{fullData.name}}<br>{config.y_label}: "
                           f"{tooltip_value(display, '%{y}%')}<extra></extra>"),
        )
        if display.stacked:
            trace.update(stackgroup='responses', fillcolor=color)
        fig.add_trace(go.Scatter(**trace))

    extra = dict(xaxis=dict(type='category', categoryorder='array', categoryarray=times))
    if display.stacked:
        extra['yaxis'] = dict(range=[0, 100])
    return _layout(fig, config, config.x_label, config.y_label, hovermode='x unified', **extra)
