"""
RCIEngine / RoutePlanner 싱글턴 관리.
앱 시작 시 한 번 로드하고, 모든 요청에서 재사용한다.
"""
import os
import sys
import threading
from pathlib import Path

# 프로젝트 루트를 sys.path에 추가
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rci.engine import RCIEngine
from rci.history import CongestionPatternTable, FailureHistoryStore
from rci.planner import RoutePlanner
from rci.zones import AdvisoryZoneStore


def data_dir() -> Path:
    return Path(os.getenv("RCI_DATA_DIR", str(PROJECT_ROOT / "data")))


class EngineRegistry:
    def __init__(self):
        self.engine: RCIEngine | None = None
        self.zone_store: AdvisoryZoneStore | None = None
        self.planner: RoutePlanner | None = None
        self.engine_lock = threading.RLock()  # Protects engine params swaps (calibrate, reload)

    def load(self):
        base = data_dir()
        print(f"Loading RCI tables from {base}")
        failure_store = FailureHistoryStore.from_csv(base / "failure_history.csv")
        congestion_table = CongestionPatternTable.from_csv(base / "congestion_patterns.csv")
        zone_store = AdvisoryZoneStore.from_csv(base / "advisory_zones.csv")

        engine = RCIEngine(failure_store=failure_store, congestion_table=congestion_table)
        self.zone_store = zone_store
        self.planner = RoutePlanner(engine, zone_store)
        self.engine = engine

    def get_engine(self) -> RCIEngine:
        if self.engine is None:
            raise RuntimeError("Engine not loaded")
        return self.engine

    def get_planner(self) -> RoutePlanner:
        if self.planner is None:
            raise RuntimeError("Engine not loaded")
        return self.planner

    def get_zone_store(self) -> AdvisoryZoneStore:
        if self.zone_store is None:
            raise RuntimeError("Engine not loaded")
        return self.zone_store


registry = EngineRegistry()
