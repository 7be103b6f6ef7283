from __future__ import annotations

import logging
from pathlib import Path

"""Delivery of a re-serialized workbook.

The browser version triggered a file download; here the bytes are written to
the output directory under the original file name (replacing an older copy).
"""

__all__ = [
    "DeliveryError",
    "deliver_file",
]

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    error_type = "DELIVERY_ERROR"


def deliver_file(data: bytes, filename: str, output_dir: Path) -> Path:
    """Write `data` to `output_dir / filename` and return the resolved path."""
    target = output_dir / Path(filename).name
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        # 一時ファイル経由で置き換え (途中失敗で既存ファイルを壊さない)
        tmp = target.with_name(target.name + ".part")
        tmp.write_bytes(data)
        tmp.replace(target)
    except OSError as e:
        raise DeliveryError(f"could not write {target}: {e}") from e
    logger.info(f"saved {target} ({len(data)} bytes)")
    return target.resolve()
