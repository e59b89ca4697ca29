"""Pivot result types consumed by the preview renderer and the serializers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any


@dataclass(frozen=True)
class CellStyle:
    """Advisory formatting for one rendered cell."""

    font_color: str | None = None
    bg_color: str | None = None
    bold: bool | None = None
    italic: bool | None = None
    align: str | None = None
    icon: str | None = None

    def merged(self, other: CellStyle | None) -> CellStyle:
        """Return a copy with every property *other* sets laid over this one."""
        if other is None:
            return self
        updates = {f.name: getattr(other, f.name) for f in fields(other) if getattr(other, f.name) is not None}
        return replace(self, **updates) if updates else self

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


EMPTY_STYLE = CellStyle()


@dataclass
class HeaderCell:
    """A merged column-header label."""

    label: str
    col_span: int = 1
    style: CellStyle | None = None
    is_total: bool = False


@dataclass
class RowHeaderCell:
    """One group-level label of an output row."""

    value: str
    row_span: int = 1
    col_span: int = 1
    is_visible: bool = True
    style: CellStyle | None = None
    is_total: bool = False


@dataclass
class DataCell:
    value: Any = None
    style: CellStyle | None = None


@dataclass
class PivotResult:
    """Complete cross-tab ready for rendering.

    ``data_matrix`` rows hold one cell per (column key, value column) slot in
    column-key-major order, so slot ``i`` belongs to
    ``column_keys[i // len(value_columns)]``.
    """

    header_rows: list[list[HeaderCell]] = field(default_factory=list)
    row_headers: list[list[RowHeaderCell]] = field(default_factory=list)
    data_matrix: list[list[DataCell]] = field(default_factory=list)
    row_keys: list[str] = field(default_factory=list)
    column_keys: list[str] = field(default_factory=list)
    unmapped_columns: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.row_headers and not self.data_matrix

    @property
    def group_level_count(self) -> int:
        return len(self.row_headers[0]) if self.row_headers else 0

    @property
    def data_width(self) -> int:
        return len(self.data_matrix[0]) if self.data_matrix else 0

    def values(self) -> list[list[Any]]:
        """The bare data matrix, ``None`` where a cell has no value."""
        return [[cell.value for cell in row] for row in self.data_matrix]
