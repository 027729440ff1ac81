"""
Module: records

Purpose: Pydantic models for every value that flows through a chart pipeline.

Records come in three tagged variants so accessors can branch on ``kind``
instead of probing for fields:
- Record: a plain aggregate produced by a grouped data source
- OthersRecord: the synthetic row that absorbs everything below a cap
- LayeredRecord: one key merged across several stacked layers

StackedPoint and LayerSeries are what a chart shell draws.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class RecordKind(str, Enum):
    """Discriminating tag carried by every record variant."""

    PLAIN = "plain"
    OTHERS = "others"
    LAYERED = "layered"


# =============================================================================
# BASE MODELS
# =============================================================================


class BaseSchema(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )


# =============================================================================
# RECORD VARIANTS
# =============================================================================


class Record(BaseSchema):
    """A single ``{key, value}`` aggregate."""

    kind: Literal[RecordKind.PLAIN] = RecordKind.PLAIN
    key: Any
    value: Any = None


class OthersRecord(BaseSchema):
    """Everything that fell outside a cap, folded into one row.

    ``members`` keeps the absorbed keys in source order so a click can filter on
    them. ``data`` is the output of the chart's ``others_out`` function applied
    to the absorbed records' raw data.
    """

    kind: Literal[RecordKind.OTHERS] = RecordKind.OTHERS
    key: Any
    value: Any
    members: tuple[Any, ...]
    data: Any = None

    @field_validator("members")
    @classmethod
    def members_not_empty(cls, v: tuple[Any, ...]) -> tuple[Any, ...]:
        """An others row only exists when something was absorbed."""
        if not v:
            raise ValueError("OthersRecord requires at least one member key")
        return v


class LayeredRecord(BaseSchema):
    """One key merged across the visible layers.

    ``values[i]`` is layer ``i``'s record for this key, or None when that layer
    has no entry for it.
    """

    kind: Literal[RecordKind.LAYERED] = RecordKind.LAYERED
    key: Any
    values: tuple[Any, ...]

    @property
    def present(self) -> tuple[bool, ...]:
        """Which layers contributed a record for this key."""
        return tuple(v is not None for v in self.values)


AnyRecord = Record | OthersRecord | LayeredRecord


def record_kind(record: Any) -> RecordKind | None:
    """Return the tag of a record, or None for foreign objects."""
    return getattr(record, "kind", None)


def is_others(record: Any) -> bool:
    """Check whether a record is a capped others row."""
    return record_kind(record) is RecordKind.OTHERS


def is_layered(record: Any) -> bool:
    """Check whether a record is a multi-layer merged row."""
    return record_kind(record) is RecordKind.LAYERED


# =============================================================================
# PLOT OUTPUT
# =============================================================================


class StackedPoint(BaseSchema):
    """A positioned value in one layer.

    ``y0`` is the baseline contributed by the layers below, ``y`` this layer's
    own magnitude. ``missing`` marks a layer that had no record for ``x``; such
    points keep the layers aligned and always have ``y == 0``.
    """

    x: Any
    y: float
    y0: float = 0.0
    layer: str
    data: Any = None
    missing: bool = False

    @property
    def top(self) -> float:
        """Upper edge of the point in stacked coordinates."""
        return self.y + self.y0


class LayerSeries(BaseSchema):
    """All points of one layer, in merged-row order."""

    name: str
    values: tuple[StackedPoint, ...] = ()


class Legendable(BaseSchema):
    """A legend entry for one declared layer."""

    name: str
    hidden: bool = False
    color: str
