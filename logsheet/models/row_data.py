from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .values import normalize_value

"""RowData model for the logsheet editor.

One mapped data row of the primary sheet. `values` holds the raw record
(column name -> raw cell value, possibly a rich mapping for formula or
hyperlink cells); `display()` collapses it to strings for a form.
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """Logical representation of a single data row.

    `index` is 0-based relative to the first data row, `row_number` is the
    absolute sheet row (index + data_start_row).
    """
    index: int
    row_number: int
    values: dict[str, Any]

    def display(self) -> dict[str, str]:
        return {name: normalize_value(value) for name, value in self.values.items()}
