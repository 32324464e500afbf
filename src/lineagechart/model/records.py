"""
Dataset Input
=============
Reads the flat model records (one row per model) from a CSV file.

Why is this file needed?
------------------------
1. Parsing: It converts raw CSV strings into typed records (dates, counts).
2. Validation: It fails fast on rows the layout cannot position (bad dates or
   citation counts), naming the offending row so the dataset can be fixed.
"""
from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from lineagechart.utils import parse_date

logger = logging.getLogger(__name__)

KNOWN_COLUMNS = (
    "name",
    "predecessor_name",
    "publish_date",
    "publisher",
    "num_citations",
    "publish_url",
    "is_free_commercial_use",
)


class RecordError(ValueError):
    """Raised when a dataset row cannot be turned into a record."""


@dataclass
class ModelRecord:
    """One row of the dataset."""
    name: str
    publish_date: datetime
    predecessor_name: Optional[str] = None
    publisher: str = ""
    num_citations: float = 0.0
    publish_url: str = ""
    is_free_commercial_use: bool = False
    extra: Dict[str, str] = field(default_factory=dict)

    def attributes(self) -> Dict[str, Any]:
        """Free-form attributes carried through the layout untouched."""
        attrs: Dict[str, Any] = {
            "publisher": self.publisher,
            "num_citations": self.num_citations,
            "publish_url": self.publish_url,
            "is_free_commercial_use": self.is_free_commercial_use,
        }
        attrs.update(self.extra)
        return attrs

    @staticmethod
    def from_row(row: Dict[str, str], line: int = 0) -> ModelRecord:
        name = (row.get("name") or "").strip()
        if not name:
            raise RecordError(f"Row {line}: missing model name.")

        try:
            publish_date = parse_date(row.get("publish_date") or "")
        except ValueError as e:
            raise RecordError(f"Row {line} ({name}): invalid publish_date {row.get('publish_date')!r}.") from e

        raw_citations = (row.get("num_citations") or "").strip()
        try:
            num_citations = float(raw_citations) if raw_citations else 0.0
        except ValueError as e:
            raise RecordError(f"Row {line} ({name}): invalid num_citations {raw_citations!r}.") from e
        if not math.isfinite(num_citations) or num_citations < 0:
            raise RecordError(f"Row {line} ({name}): invalid num_citations {raw_citations!r}, expected a finite count >= 0.")

        predecessor = (row.get("predecessor_name") or "").strip() or None

        return ModelRecord(
            name=name,
            publish_date=publish_date,
            predecessor_name=predecessor,
            publisher=(row.get("publisher") or "").strip(),
            num_citations=num_citations,
            publish_url=(row.get("publish_url") or "").strip(),
            is_free_commercial_use=(row.get("is_free_commercial_use") or "").strip().upper() == "Y",
            extra={k: v for k, v in row.items() if k is not None and k not in KNOWN_COLUMNS},
        )


def parse_records(rows: Iterable[Dict[str, str]]) -> List[ModelRecord]:
    """Convert dict rows (e.g. from csv.DictReader) into records."""
    # header is line 1
    return [ModelRecord.from_row(row, line=i) for i, row in enumerate(rows, start=2)]

def load_records(path: str) -> List[ModelRecord]:
    """
    Load model records from a CSV file.

    Args:
        path: Path to a CSV file with a header row.

    Returns:
        Records in file order.
    """
    logger.info(f"Loading records from: {path}")
    with open(path, newline="", encoding="utf-8") as f:
        records = parse_records(csv.DictReader(f))
    logger.info(f"Loaded {len(records)} records.")
    return records
