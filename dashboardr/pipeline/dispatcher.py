"""
Backend Dispatcher - routes a finished ChartConfig to exactly one renderer.

=== PURPOSE ===
Backend names are normalised (case, aliases such as ``mpl``/``sns``) and
checked against a closed registry keyed by ``(ChartType, backend)``.  The
registry is cross-checked against ``BACKEND_CAPABILITIES`` when this module
is imported, so a missing or stray renderer fails at import time instead of
at the first chart call.

Chart ids come from an explicit ``ChartIdCounter`` owned by the caller
(typically one per dashboard page); there is no process-wide counter.
"""

import logging
from typing import Callable, Dict, Optional, Tuple

from ..core.config import BACKEND_ALIASES, BACKEND_CAPABILITIES, BACKENDS
from ..core.errors import UnsupportedBackendError
from ..core.utils import suggest_alternative
from ..models.data_models import ChartConfig, ChartType
from ..renderers import matplotlib_charts, plotly_charts, seaborn_charts

logger = logging.getLogger(__name__)


# ============================================================================
# RENDERER REGISTRY
# ============================================================================

RENDERERS: Dict[Tuple[ChartType, str], Callable] = {
    (ChartType.HISTOGRAM, 'plotly'): plotly_charts.render_histogram,
    (ChartType.HISTOGRAM, 'matplotlib'): matplotlib_charts.render_histogram,
    (ChartType.HISTOGRAM, 'seaborn'): seaborn_charts.render_histogram,
    (ChartType.BAR, 'plotly'): plotly_charts.render_bar,
    (ChartType.BAR, 'matplotlib'): matplotlib_charts.render_bar,
    (ChartType.BAR, 'seaborn'): seaborn_charts.render_bar,
    (ChartType.STACKEDBAR, 'plotly'): plotly_charts.render_stackedbar,
    (ChartType.STACKEDBAR, 'matplotlib'): matplotlib_charts.render_stackedbar,
    (ChartType.BOXPLOT, 'plotly'): plotly_charts.render_boxplot,
    (ChartType.BOXPLOT, 'matplotlib'): matplotlib_charts.render_boxplot,
    (ChartType.SCATTER, 'plotly'): plotly_charts.render_scatter,
    (ChartType.SCATTER, 'matplotlib'): matplotlib_charts.render_scatter,
    (ChartType.SCATTER, 'seaborn'): seaborn_charts.render_scatter,
    (ChartType.LOLLIPOP, 'plotly'): plotly_charts.render_lollipop,
    (ChartType.LOLLIPOP, 'matplotlib'): matplotlib_charts.render_lollipop,
    (ChartType.DUMBBELL, 'plotly'): plotly_charts.render_dumbbell,
    (ChartType.DUMBBELL, 'matplotlib'): matplotlib_charts.render_dumbbell,
    (ChartType.FUNNEL, 'plotly'): plotly_charts.render_funnel,
    (ChartType.FUNNEL, 'matplotlib'): matplotlib_charts.render_funnel,
    (ChartType.TREEMAP, 'plotly'): plotly_charts.render_treemap,
    (ChartType.MAP, 'plotly'): plotly_charts.render_map,
    (ChartType.GAUGE, 'plotly'): plotly_charts.render_gauge,
    (ChartType.PIE, 'plotly'): plotly_charts.render_pie,
    (ChartType.PIE, 'matplotlib'): matplotlib_charts.render_pie,
    (ChartType.HEATMAP, 'plotly'): plotly_charts.render_heatmap,
    (ChartType.HEATMAP, 'matplotlib'): matplotlib_charts.render_heatmap,
    (ChartType.HEATMAP, 'seaborn'): seaborn_charts.render_heatmap,
    (ChartType.TIMELINE, 'plotly'): plotly_charts.render_timeline,
    (ChartType.TIMELINE, 'matplotlib'): matplotlib_charts.render_timeline,
}


def _check_registry() -> None:
    """Registry and capability table must describe the same pairs."""
    declared = {
        (ChartType(chart), backend)
        for chart, backends in BACKEND_CAPABILITIES.items()
        for backend in backends
    }
    registered = set(RENDERERS)
    if declared != registered:
        missing = sorted(f"{c.value}/{b}" for c, b in declared - registered)
        extra = sorted(f"{c.value}/{b}" for c, b in registered - declared)
        raise RuntimeError(f"Renderer registry out of sync: missing={missing}, undeclared={extra}")
    unknown = {b for _, b in registered} - set(BACKENDS)
    if unknown:
        raise RuntimeError(f"Renderer registry uses unknown backends: {sorted(unknown)}")


_check_registry()


# ============================================================================
# BACKEND RESOLUTION
# ============================================================================

def normalize_backend(backend) -> str:
    """Canonical backend name for ``backend`` (case-insensitive, aliases allowed).

    Raises:
        UnsupportedBackendError: Unknown backend; the message lists the valid
            backends and a close match when there is one.
    """
    if isinstance(backend, str):
        key = backend.strip().lower()
        key = BACKEND_ALIASES.get(key, key)
        if key in BACKENDS:
            return key

    msg = f"Unsupported backend '{backend}'. Valid backends: {', '.join(BACKENDS)}"
    suggestion = suggest_alternative(backend, list(BACKENDS) + list(BACKEND_ALIASES))
    if suggestion:
        msg += f". Did you mean '{BACKEND_ALIASES.get(suggestion, suggestion)}'?"
    raise UnsupportedBackendError(msg, backend=backend, valid=BACKENDS)


def supported_backends(chart_type) -> Tuple[str, ...]:
    return tuple(BACKEND_CAPABILITIES[ChartType(chart_type).value])


def assert_backend_supported(chart_type, backend: str) -> str:
    """Normalise ``backend`` and check it can draw ``chart_type``."""
    chart_type = ChartType(chart_type)
    backend = normalize_backend(backend)
    valid = supported_backends(chart_type)
    if backend not in valid:
        raise UnsupportedBackendError(
            f"Chart type '{chart_type.value}' is not available for backend '{backend}'. "
            f"Supported backends: {', '.join(valid)}",
            backend=backend, valid=valid,
        )
    return backend


def get_renderer(chart_type, backend: str) -> Callable:
    backend = assert_backend_supported(chart_type, backend)
    return RENDERERS[(ChartType(chart_type), backend)]


def dispatch(config: ChartConfig):
    """Hand ``config`` to its renderer and return the chart object."""
    renderer = get_renderer(config.chart_type, config.backend)
    logger.debug(f"Dispatching {config.chart_type.value} chart"
                 f"{' ' + config.chart_id if config.chart_id else ''} to {renderer.__module__}.{renderer.__name__}")
    return renderer(config)


# ============================================================================
# CHART IDS
# ============================================================================

class ChartIdCounter:
    """
    Sequential chart identifiers for one rendering session.

    Example::

        >>> ids = ChartIdCounter("page1")
        >>> ids.next_id(), ids.next_id()
        ('page1-chart-1', 'page1-chart-2')
    """

    def __init__(self, prefix: Optional[str] = None, start: int = 1):
        self.prefix = prefix
        self.start = start
        self._next = start

    def next_id(self) -> str:
        value = self._next
        self._next += 1
        return f"{self.prefix}-chart-{value}" if self.prefix else f"chart-{value}"

    @property
    def issued(self) -> int:
        return self._next - self.start

    def reset(self) -> None:
        self._next = self.start
