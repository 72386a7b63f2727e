"""Overlay layer holding the current detection annotations."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

from live_detect.core.types import OverlayAnnotation, Rect
from live_detect.overlay.geometry import AffineTransform


@dataclass(frozen=True, slots=True)
class LayerState:
    """Immutable snapshot of everything a reader needs to draw the layer.

    Attributes:
        bounds: Buffer-space rectangle of the layer
        position: Screen position of the layer's center
        transform: Applied about the layer's center before positioning
        annotations: Annotations in buffer space, drawn in order
        revision: Incremented on every committed transaction
    """

    bounds: Rect = field(default_factory=Rect.zero)
    position: tuple[float, float] = (0.0, 0.0)
    transform: AffineTransform = field(default_factory=AffineTransform)
    annotations: tuple[OverlayAnnotation, ...] = ()
    revision: int = 0

    def map_point(self, x: float, y: float) -> tuple[float, float]:
        """Map a buffer-space point to screen space."""
        cx, cy = self.bounds.center
        px, py = self.transform.apply(x - cx, y - cy)
        return px + self.position[0], py + self.position[1]

    def map_rect(self, rect: Rect) -> NDArray[np.float64]:
        """Map a buffer-space rectangle to its four screen-space corners.

        Corners are returned in buffer order: top-left, top-right,
        bottom-right, bottom-left.
        """
        corners = [
            (rect.min_x, rect.min_y),
            (rect.max_x, rect.min_y),
            (rect.max_x, rect.max_y),
            (rect.min_x, rect.max_y),
        ]
        return np.array([self.map_point(x, y) for x, y in corners], dtype=np.float64)

    def screen_rect(self, rect: Rect) -> Rect:
        """Axis-aligned screen-space bounding box of a buffer-space rectangle."""
        quad = self.map_rect(rect)
        min_x, min_y = quad.min(axis=0)
        max_x, max_y = quad.max(axis=0)
        return Rect(float(min_x), float(min_y), float(max_x - min_x), float(max_y - min_y))

    @property
    def frame(self) -> Rect:
        """Screen-space bounding box of the whole layer."""
        return self.screen_rect(self.bounds)


class LayerTransaction:
    """Staged mutations applied to a layer in one commit."""

    def __init__(self, state: LayerState) -> None:
        self.bounds = state.bounds
        self.position = state.position
        self.transform = state.transform
        self._annotations = list(state.annotations)

    @property
    def annotations(self) -> list[OverlayAnnotation]:
        return list(self._annotations)

    def clear(self) -> None:
        """Remove all annotations."""
        self._annotations.clear()

    def add(self, annotation: OverlayAnnotation) -> None:
        self._annotations.append(annotation)

    def build(self, base: LayerState) -> LayerState:
        return replace(
            base,
            bounds=self.bounds,
            position=self.position,
            transform=self.transform,
            annotations=tuple(self._annotations),
            revision=base.revision + 1,
        )


class OverlayLayer:
    """Annotation layer mutated only from the rendering context.

    All mutations go through ``transaction``; the committed state is
    swapped in as a single immutable snapshot, so a reader holding
    ``state`` never sees a half-applied update, and nothing is
    interpolated between commits.
    """

    def __init__(self, name: str = "Detection Overlay") -> None:
        self.name = name
        self._state = LayerState()

    @property
    def state(self) -> LayerState:
        """Latest committed snapshot."""
        return self._state

    @property
    def annotations(self) -> tuple[OverlayAnnotation, ...]:
        return self._state.annotations

    @property
    def bounds(self) -> Rect:
        return self._state.bounds

    @property
    def position(self) -> tuple[float, float]:
        return self._state.position

    @property
    def transform(self) -> AffineTransform:
        return self._state.transform

    @property
    def revision(self) -> int:
        return self._state.revision

    @contextmanager
    def transaction(self) -> Iterator[LayerTransaction]:
        """Stage mutations and commit them together.

        Nothing is committed if the block raises.
        """
        base = self._state
        txn = LayerTransaction(base)
        yield txn
        self._state = txn.build(base)
