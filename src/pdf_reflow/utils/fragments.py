"""
Fragment model for positioned text runs.

Provides:
- Fragment data class (text, baseline origin, advance width)
- Normalisation of raw page items produced by PDF text extractors
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Fragment:
    """One shaped text run extracted from a page.

    ``x``/``y`` is the baseline origin in page space with y growing upward,
    so a larger ``y`` is visually higher on the page.
    """
    text: str
    x: float
    y: float
    width: float = 0.0

    @property
    def right_edge(self) -> float:
        return self.x + (self.width or 0.0)

    @classmethod
    def from_item(cls, item: Any) -> 'Fragment':
        """
        Build a fragment from a raw page item.

        Items may be mappings or objects. Text is read from ``text`` or
        ``str``; the position from ``transform[4]``/``transform[5]`` or from
        explicit ``x``/``y`` values.

        Raises:
            ValueError: If the item carries no usable coordinates
        """
        text = _get(item, "text")
        if text is None:
            text = _get(item, "str")

        transform = _get(item, "transform")
        if transform is not None and len(transform) >= 6:
            x, y = transform[4], transform[5]
        else:
            x, y = _get(item, "x"), _get(item, "y")

        if x is None or y is None:
            raise ValueError(f"Page item has no position: {item!r}")

        width = _get(item, "width")
        return cls(
            text="" if text is None else str(text),
            x=float(x),
            y=float(y),
            width=float(width) if width else 0.0,
        )

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "width": self.width,
        }


def _get(item: Any, key: str) -> Optional[Any]:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def normalize_page(items: Iterable[Any]) -> List[Fragment]:
    """Convert the raw items of one page into fragments, keeping their order."""
    fragments = []
    for item in items:
        if isinstance(item, Fragment):
            fragments.append(item)
        else:
            fragments.append(Fragment.from_item(item))
    return fragments
