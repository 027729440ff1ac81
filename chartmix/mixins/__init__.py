"""
Behavior layers that wrap a chart's operation slots.
"""

from chartmix.mixins.cap import CapMixin, CappedGroup
from chartmix.mixins.layouts import cumulative_layout, normalized_layout
from chartmix.mixins.stack import Layer, StackedGroup, StackMixin

__all__ = [
    "CapMixin",
    "CappedGroup",
    "Layer",
    "StackedGroup",
    "StackMixin",
    "cumulative_layout",
    "normalized_layout",
]
