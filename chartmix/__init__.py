"""
chartmix: composable capping and stacking for grouped chart data.

Charts are built from behavior layers that wrap named operation slots:
- CapMixin keeps the top rows of a group and folds the rest into "Others"
- StackMixin merges several groups by key and assigns stacked baselines
- RowChart composes both over BaseChart
"""

from chartmix.charts.base import BaseChart, Composable
from chartmix.charts.row import RowChart, RowGeometry
from chartmix.core.filters import MultiKeyFilter
from chartmix.core.override import OperationRegistry, override
from chartmix.core.records import (
    LayeredRecord,
    LayerSeries,
    Legendable,
    OthersRecord,
    Record,
    RecordKind,
    StackedPoint,
)
from chartmix.core.sources import DataFrameGroup, GroupedDataSource, StaticGroup
from chartmix.exceptions import (
    ChartMixError,
    InvalidConfigurationError,
    MissingOperationError,
)
from chartmix.mixins.cap import CapMixin
from chartmix.mixins.stack import StackMixin
from chartmix.settings import ChartSettings, get_settings, load_settings

__all__ = [
    # Charts
    "BaseChart",
    "Composable",
    "RowChart",
    "RowGeometry",
    # Behavior layers
    "CapMixin",
    "StackMixin",
    "OperationRegistry",
    "override",
    # Records
    "LayeredRecord",
    "LayerSeries",
    "Legendable",
    "OthersRecord",
    "Record",
    "RecordKind",
    "StackedPoint",
    "MultiKeyFilter",
    # Sources
    "DataFrameGroup",
    "GroupedDataSource",
    "StaticGroup",
    # Errors
    "ChartMixError",
    "InvalidConfigurationError",
    "MissingOperationError",
    # Settings
    "ChartSettings",
    "get_settings",
    "load_settings",
]
