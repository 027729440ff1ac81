"""
Module: override

Purpose: Named operation slots that behavior layers can wrap without knowing
about each other.

Key Functions:
- OperationRegistry: Owns the slots of one chart instance
- OperationSlot: A base implementation plus an ordered list of wrappers
- override: Wrap a named operation on a composable target

Architecture Notes:
- A wrapper is a function ``previous -> new``. Wrappers apply in install order,
  so the most recently installed one runs first and may delegate to the
  implementation it replaced (exposed as ``.overridden``).
- Setters replace only the base implementation; installed wrappers stay.
- Slots are resolved on every lookup, nothing is memoized.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from chartmix.exceptions import MissingOperationError

logger = logging.getLogger(__name__)

Operation = Callable[..., Any]
Wrapper = Callable[[Operation], Operation]


class ChainedOperation:
    """An installed implementation together with the one it replaced."""

    __slots__ = ("impl", "overridden", "label")

    def __init__(self, impl: Operation, overridden: Operation, label: str) -> None:
        self.impl = impl
        self.overridden = overridden
        self.label = label

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.impl(*args, **kwargs)

    def __repr__(self) -> str:
        return f"ChainedOperation(label={self.label!r})"


@dataclass
class OperationSlot:
    """One named operation: a base implementation and its wrappers."""

    name: str
    base: Operation
    wrappers: list[tuple[str, Wrapper]] = field(default_factory=list)

    def resolve(self, *, below: str | None = None) -> Operation:
        """Build the composed implementation, outermost wrapper last applied.

        Args:
            below: Stop before the wrapper with this label, returning what that
                wrapper would receive as its ``previous`` implementation

        Raises:
            MissingOperationError: If ``below`` names no installed wrapper
        """
        if below is not None and below not in (label for label, _ in self.wrappers):
            raise MissingOperationError(
                f"Operation {self.name!r} has no wrapper labelled {below!r}",
                operation=self.name,
                available=list(self.chain()),
            )
        impl: Operation = self.base
        for label, wrapper in self.wrappers:
            if label == below:
                break
            impl = ChainedOperation(wrapper(impl), impl, label)
        return impl

    def chain(self) -> tuple[str, ...]:
        """Labels of the installed wrappers, outermost first, then ``base``."""
        return tuple(label for label, _ in reversed(self.wrappers)) + ("base",)


class OperationRegistry:
    """Named operation slots owned by a single chart instance."""

    def __init__(self) -> None:
        self._slots: dict[str, OperationSlot] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._slots

    def names(self) -> list[str]:
        """Installed slot names in install order."""
        return list(self._slots)

    def install(self, name: str, impl: Operation) -> None:
        """Install a base implementation, keeping any wrappers already on the slot."""
        slot = self._slots.get(name)
        if slot is None:
            self._slots[name] = OperationSlot(name=name, base=impl)
        else:
            slot.base = impl

    def replace(self, name: str, impl: Operation) -> None:
        """Replace the base implementation of an existing slot."""
        self._slot(name).base = impl

    def override(self, name: str, wrapper: Wrapper, *, label: str | None = None) -> None:
        """Wrap an installed operation.

        Args:
            name: Slot name, which must already be installed
            wrapper: Function receiving the current implementation and returning
                the new one
            label: Name shown by ``chain()``; defaults to the wrapper's qualname

        Raises:
            MissingOperationError: If ``name`` was never installed
        """
        slot = self._slot(name)
        tag = label or getattr(wrapper, "__qualname__", repr(wrapper))
        slot.wrappers.append((tag, wrapper))
        logger.debug(f"Overrode operation {name!r} with {tag} (depth {len(slot.wrappers)})")

    def resolve(self, name: str, *, below: str | None = None) -> Operation:
        """Return the composed implementation of ``name``."""
        return self._slot(name).resolve(below=below)

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Resolve ``name`` and invoke it."""
        return self.resolve(name)(*args, **kwargs)

    def chain(self, name: str) -> tuple[str, ...]:
        """Describe the wrapper chain of ``name``."""
        return self._slot(name).chain()

    def _slot(self, name: str) -> OperationSlot:
        slot = self._slots.get(name)
        if slot is None:
            raise MissingOperationError(
                f"Operation {name!r} is not installed",
                operation=name,
                available=self.names(),
            )
        return slot


def override(target: Any, name: str, wrapper: Wrapper, *, label: str | None = None) -> None:
    """Wrap the named operation of a composable target.

    Args:
        target: Object exposing an ``operations`` registry
        name: Operation to wrap
        wrapper: Function ``previous -> new``
        label: Optional name for the wrapper in ``chain()`` output

    Raises:
        MissingOperationError: If the target has no registry or lacks ``name``
    """
    registry = getattr(target, "operations", None)
    if not isinstance(registry, OperationRegistry):
        raise MissingOperationError(
            f"{type(target).__name__} has no operation registry to override {name!r}",
            operation=name,
        )
    registry.override(name, wrapper, label=label)
