"""Completion aggregation across independent sources.

Each source turns the filter text into scored rows. The aggregator queries
every source concurrently, drops failing ones, merges and sorts the rows,
groups them under a heading per source type and tracks which row is
selected. Sources never deal with selection or presentation; they only
describe their cells and the relative widths of those cells.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


@dataclass
class Cell:
    """One display cell: text, relative width (default 1) and style tags."""

    text: str
    width: float | None = None
    classes: list[str] = field(default_factory=list)


@dataclass
class CompletionRow:
    """A selectable suggestion.

    ``completion`` is inserted into the buffer on selection, ``type`` is the
    group heading and ``score`` orders rows (ascending).
    """

    cells: list[Cell]
    completion: str
    type: str
    score: float = 0
    selected: bool = False


@dataclass
class SourceResult:
    """What a source returns for one filter string."""

    rows: list[CompletionRow] = field(default_factory=list)
    active: bool = True


@runtime_checkable
class CompletionSource(Protocol):
    """A provider of completion rows for a filter string."""

    name: str

    async def query(self, filter_text: str) -> SourceResult | list[CompletionRow]: ...


class StaticCompletionSource:
    """Source over a fixed list of (completion, description) pairs.

    Rows are kept when the completion starts with the filter text. The
    score is the position in the list, so earlier items sort first.
    """

    def __init__(
        self,
        name: str,
        items: list[tuple[str, str]],
        *,
        type: str | None = None,
    ) -> None:
        self.name = name
        self._items = list(items)
        self._type = type or name

    async def query(self, filter_text: str) -> SourceResult:
        rows = [
            CompletionRow(
                cells=[Cell(value), Cell(description, width=2, classes=["description"])],
                completion=value,
                type=self._type,
                score=i,
            )
            for i, (value, description) in enumerate(self._items)
            if value.startswith(filter_text)
        ]
        return SourceResult(rows=rows, active=bool(rows))


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


@dataclass
class RenderedCell:
    text: str
    width_percent: float
    style_tags: list[str] = field(default_factory=list)


@dataclass
class RenderedRow:
    cells: list[RenderedCell]
    completion: str
    type: str
    is_selected: bool = False


@dataclass
class RenderProjection:
    """Render-ready view of one aggregation pass.

    ``groups`` maps each heading to its rows in first-seen order. ``rows``
    is the flattened score order that ``selected_index`` refers to.
    """

    filter_text: str = ""
    groups: dict[str, list[RenderedRow]] = field(default_factory=dict)
    rows: list[RenderedRow] = field(default_factory=list)
    selected_index: int | None = None

    @property
    def selected(self) -> RenderedRow | None:
        if self.selected_index is None:
            return None
        return self.rows[self.selected_index]

    @property
    def is_empty(self) -> bool:
        return not self.rows


def normalize_widths(cells: list[Cell]) -> list[RenderedCell]:
    """Turn relative cell widths into percentages of the row total.

    Widths ``[1, 2, 1]`` become ``[25.0, 50.0, 25.0]``. A row whose widths
    sum to zero is split evenly.
    """
    if not cells:
        return []
    widths = [float(c.width if c.width is not None else 1) for c in cells]
    total = sum(widths)
    if total <= 0:
        widths = [1.0] * len(cells)
        total = float(len(cells))
    return [
        RenderedCell(text=c.text, width_percent=w / total * 100, style_tags=list(c.classes))
        for c, w in zip(cells, widths)
    ]


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class CompletionAggregator:
    """Fans a filter out to every registered source and merges the rows."""

    def __init__(
        self,
        sources: list[CompletionSource] | None = None,
        *,
        source_timeout: float | None = None,
    ) -> None:
        self._sources: list[CompletionSource] = list(sources or [])
        self._source_timeout = source_timeout
        self._rows: list[CompletionRow] = []
        self._selected_index = 0
        self._has_selection = True
        self._navigated = False
        self._filter_text: str | None = None

    # --- Registry ---

    @property
    def sources(self) -> list[CompletionSource]:
        return list(self._sources)

    def register(self, source: CompletionSource) -> None:
        self._sources.append(source)

    def unregister(self, name: str) -> None:
        self._sources = [s for s in self._sources if s.name != name]

    # --- Selection ---

    @property
    def selected_index(self) -> int | None:
        """Index into the flattened rows, or ``None`` when nothing is selected."""
        if not self._rows or not self._has_selection:
            return None
        return self._selected_index % len(self._rows)

    @property
    def selected_row(self) -> CompletionRow | None:
        index = self.selected_index
        return None if index is None else self._rows[index]

    @property
    def navigated(self) -> bool:
        """Whether the selection was moved since the filter last changed."""
        return self._navigated and self.selected_index is not None

    def get_completion(self) -> str | None:
        row = self.selected_row
        return None if row is None else row.completion

    def next(self) -> RenderProjection:
        """Select the following row, wrapping to the first."""
        return self._move(1)

    def prev(self) -> RenderProjection:
        """Select the preceding row, wrapping to the last."""
        return self._move(-1)

    def _move(self, delta: int) -> RenderProjection:
        if not self._has_selection:
            # First move after a deselect lands on the first or last row
            self._has_selection = True
            self._selected_index = 0 if delta > 0 else -1
        else:
            self._selected_index += delta
        if self._rows:
            self._selected_index %= len(self._rows)
        self._navigated = True
        return self.project()

    def deselect(self) -> RenderProjection:
        self._has_selection = False
        self._navigated = False
        return self.project()

    def reset(self) -> None:
        """Forget the last pass and selection."""
        self._rows = []
        self._selected_index = 0
        self._has_selection = True
        self._navigated = False
        self._filter_text = None

    # --- Refresh ---

    async def _query_source(self, source: CompletionSource, filter_text: str) -> list[CompletionRow]:
        try:
            if self._source_timeout is not None:
                result = await asyncio.wait_for(source.query(filter_text), self._source_timeout)
            else:
                result = await source.query(filter_text)
        except asyncio.TimeoutError:
            logger.warning("Completion source %s timed out after %ss", source.name, self._source_timeout)
            return []
        except Exception:
            logger.exception("Completion source %s failed", source.name)
            return []

        if isinstance(result, SourceResult):
            return list(result.rows) if result.active else []
        return list(result or [])

    async def gather_rows(self, filter_text: str) -> list[CompletionRow]:
        """Query every source with *filter_text* and return the sorted rows.

        Nothing is stored; pass the rows to ``commit`` to make them current.
        """
        results = await asyncio.gather(
            *(self._query_source(source, filter_text) for source in self._sources)
        )
        merged = [row for rows in results for row in rows]
        # sorted() is stable: equal scores keep registry order
        return sorted(merged, key=lambda row: row.score)

    def commit(self, filter_text: str, rows: list[CompletionRow]) -> RenderProjection:
        """Make *rows* the current pass for *filter_text* and project them.

        A pass always selects a row. The index carries over from the last
        pass when the filter is unchanged, even after a deselect.
        """
        self._rows = list(rows)
        if filter_text != self._filter_text:
            self._selected_index = 0
            self._navigated = False
        self._has_selection = True
        self._filter_text = filter_text
        return self.project()

    async def refresh(self, filter_text: str) -> RenderProjection:
        """Query every source with *filter_text* and project the merged rows."""
        return self.commit(filter_text, await self.gather_rows(filter_text))

    def project(self) -> RenderProjection:
        """Build a projection of the current rows with selection marked."""
        selected = self.selected_index
        projection = RenderProjection(filter_text=self._filter_text or "", selected_index=selected)
        for i, row in enumerate(self._rows):
            row.selected = i == selected
            rendered = RenderedRow(
                cells=normalize_widths(row.cells),
                completion=row.completion,
                type=row.type,
                is_selected=row.selected,
            )
            projection.rows.append(rendered)
            projection.groups.setdefault(row.type, []).append(rendered)
        return projection
