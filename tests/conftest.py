"""
pytest 설정 파일
"""
import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# 프로젝트 루트를 sys.path에 추가
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from rci.engine import RCIEngine
from rci.history import CongestionPatternTable, FailureHistoryStore
from rci.models import ConfidenceResult, ConfidenceTier, ModeType, RCIComponents, RouteCandidate
from rci.utils import FixedSequenceRandom

DATA_DIR = PROJECT_ROOT / "data"


class ConstantComponents:
    """항상 같은 기본 구성 요소를 반환하는 ComponentModel"""

    def __init__(self, components=None):
        self.components = components or RCIComponents(
            on_time_prob=0.7,
            transfer_success=0.8,
            crowd_stability=0.9,
            delay_variance=0.8,
            last_mile_avail=0.9,
        )

    def sample(self):
        return self.components


@pytest.fixture(scope="session")
def test_client(tmp_path_factory):
    """FastAPI 테스트 클라이언트 픽스처 (경로 저장소는 임시 SQLite)"""
    from api.app import app
    from api.routers import routes

    original_path = routes.DB_PATH
    routes.DB_PATH = tmp_path_factory.mktemp("db") / "routes.db"
    routes._db_initialized = False
    try:
        with TestClient(app) as client:
            yield client
    finally:
        routes.DB_PATH = original_path
        routes._db_initialized = False


@pytest.fixture(scope="session")
def failure_store():
    return FailureHistoryStore.from_csv(DATA_DIR / "failure_history.csv")


@pytest.fixture(scope="session")
def congestion_table():
    return CongestionPatternTable.from_csv(DATA_DIR / "congestion_patterns.csv")


@pytest.fixture
def fixed_engine(failure_store, congestion_table):
    """기본 구성 요소가 고정된 RCIEngine 픽스처"""
    return RCIEngine(
        failure_store=failure_store,
        congestion_table=congestion_table,
        component_model=ConstantComponents(),
    )


@pytest.fixture
def constant_components():
    """ConstantComponents 클래스 (구성 요소를 직접 지정할 때 사용)"""
    return ConstantComponents


@pytest.fixture
def fixed_rng():
    return FixedSequenceRandom([0.1, 0.3, 0.5, 0.2])


@pytest.fixture
def make_candidate():
    """테스트용 RouteCandidate 팩토리"""

    def _make(
        rci=0.8,
        duration=30.0,
        mode_type=ModeType.SINGLE,
        transfer_count=0,
        crowd_score=None,
        transfer_success=None,
        crowd_stability=0.9,
        name="route",
    ):
        comps = RCIComponents(
            on_time_prob=0.8,
            transfer_success=0.85,
            crowd_stability=crowd_stability,
            delay_variance=0.8,
            last_mile_avail=0.9,
        )
        confidence = ConfidenceResult(
            rci=rci,
            original_rci=rci,
            explanation="",
            failure_penalty=0.0,
            time_window_penalty=0.0,
            osint_penalty=0.0,
            persona_bonus=0.0,
            components=comps,
            risk_factors=(),
            confidence_level=ConfidenceTier.HIGH,
            time_window="18:30-18:45",
        )
        return RouteCandidate(
            route_id=str(uuid.uuid4()),
            mode_type=mode_type,
            name=name,
            geometry="",
            distance=10.0,
            duration=duration,
            confidence=confidence,
            transfer_count=transfer_count,
            crowd_score=crowd_score,
            transfer_success=transfer_success,
        )

    return _make
