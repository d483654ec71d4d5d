"""
Failure history & congestion pattern lookups
============================================
Both tables are keyed by a 15-minute time window label (see geo.bucket_time).

    failure_penalty    = (failure_count / total_journeys) * 0.30
    congestion_penalty = (1 - reliability_multiplier) * 0.25

Missing data never raises: an unknown signature/window means zero penalty.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from rci.geo import Coord

DEFAULT_WINDOW = "DEFAULT"

FAILURE_PENALTY_WEIGHT = 0.30
CONGESTION_PENALTY_WEIGHT = 0.25


def route_signature(start: Coord, end: Coord) -> str:
    """"lat1_lng1_lat2_lng2" with coordinates rounded to 2 decimals (~1 km)."""
    return "_".join(f"{v:.2f}" for v in (start[0], start[1], end[0], end[1]))


@dataclass(frozen=True)
class FailureHistoryRecord:
    route_signature: str
    time_window: str
    failure_count: int
    total_journeys: int
    avg_delay_minutes: float
    last_failure_date: Optional[str] = None

    @property
    def failure_rate(self) -> float:
        if self.total_journeys <= 0:
            return 0.0
        return self.failure_count / self.total_journeys


@dataclass(frozen=True)
class CongestionPattern:
    time_window: str
    reliability_multiplier: float
    typical_delay_minutes: float
    congestion_level: float


def failure_penalty(
    record: Optional[FailureHistoryRecord], weight: float = FAILURE_PENALTY_WEIGHT
) -> float:
    if record is None:
        return 0.0
    return record.failure_rate * weight


def congestion_penalty(
    pattern: Optional[CongestionPattern], weight: float = CONGESTION_PENALTY_WEIGHT
) -> float:
    if pattern is None:
        return 0.0
    return (1.0 - pattern.reliability_multiplier) * weight


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

def _read_table(csv_path: Path, required, label: str) -> Optional[pd.DataFrame]:
    if not csv_path.exists():
        print(f"  {label}: {csv_path.name} not found (empty table)")
        return None
    df = pd.read_csv(csv_path, encoding="utf-8-sig")
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{csv_path.name}: missing columns {missing}")
    return df


class FailureHistoryStore:
    """Read-only (signature, window) -> FailureHistoryRecord mapping."""

    REQUIRED_COLUMNS = (
        "route_signature", "time_window", "failure_count",
        "total_journeys", "avg_delay_minutes",
    )

    def __init__(self, records: Iterable[FailureHistoryRecord] = ()):
        self._records: Dict[Tuple[str, str], FailureHistoryRecord] = {
            (r.route_signature, r.time_window): r for r in records
        }

    @classmethod
    def from_csv(cls, csv_path) -> "FailureHistoryStore":
        df = _read_table(Path(csv_path), cls.REQUIRED_COLUMNS, "Failure history")
        if df is None:
            return cls()

        records = []
        for _, row in df.iterrows():
            last = row.get("last_failure_date")
            records.append(FailureHistoryRecord(
                route_signature=str(row["route_signature"]),
                time_window=str(row["time_window"]),
                failure_count=int(row["failure_count"]),
                total_journeys=int(row["total_journeys"]),
                avg_delay_minutes=float(row["avg_delay_minutes"]),
                last_failure_date=None if pd.isna(last) else str(last),
            ))
        print(f"  Failure history: {len(records)} records")
        return cls(records)

    def __len__(self) -> int:
        return len(self._records)

    def lookup(self, signature: str, window: str) -> Optional[FailureHistoryRecord]:
        return self._records.get((signature, window))


class CongestionPatternTable:
    """Time window -> CongestionPattern, with an optional DEFAULT row."""

    REQUIRED_COLUMNS = (
        "time_window", "reliability_multiplier",
        "typical_delay_minutes", "congestion_level",
    )

    def __init__(self, patterns: Iterable[CongestionPattern] = ()):
        self._patterns: Dict[str, CongestionPattern] = {p.time_window: p for p in patterns}

    @classmethod
    def from_csv(cls, csv_path) -> "CongestionPatternTable":
        df = _read_table(Path(csv_path), cls.REQUIRED_COLUMNS, "Congestion patterns")
        if df is None:
            return cls()

        patterns = [
            CongestionPattern(
                time_window=str(row["time_window"]),
                reliability_multiplier=float(row["reliability_multiplier"]),
                typical_delay_minutes=float(row["typical_delay_minutes"]),
                congestion_level=float(row["congestion_level"]),
            )
            for _, row in df.iterrows()
        ]
        print(f"  Congestion patterns: {len(patterns)} windows")
        return cls(patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def default(self) -> Optional[CongestionPattern]:
        return self._patterns.get(DEFAULT_WINDOW)

    def lookup(self, window: str) -> Optional[CongestionPattern]:
        return self._patterns.get(window, self.default)
