from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any

import pandas as pd

"""Raw cell values and their display strings.

Raw values come in three shapes:
- formula cell   -> {"formula": "=...", "result": <cached value or None>}
- hyperlink cell -> {"text": <value>, "hyperlink": <target>}
- anything else  -> the plain cell value
"""

__all__ = [
    "RICH_KEYS",
    "normalize_value",
]

# 表示値の優先順位: 計算結果 > テキスト > 値 > 数式
RICH_KEYS = ("result", "text", "value", "formula")


def normalize_value(value: Any) -> str:
    """Collapse a raw record value to a single display string.

    >>> normalize_value({"formula": "=A1", "result": "5"})
    '5'
    >>> normalize_value({})
    ''
    >>> normalize_value(42)
    '42'
    """
    if value is None:
        return ""
    if isinstance(value, Mapping):
        for key in RICH_KEYS:
            candidate = value.get(key)
            if candidate is None or candidate == "":
                continue
            return normalize_value(candidate)
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)
