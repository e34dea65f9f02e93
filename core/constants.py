"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → fleetledger/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    LOG_LEVEL: str = "INFO"

    # SQLite 잠금 대기 (다른 연결이 쓰기 락을 잡고 있을 때)
    BUSY_TIMEOUT_MS: int = 30000

    # 자동 채번 시작값 (조직에 Trip이 하나도 없을 때)
    FIRST_TRIP_NO: int = 1001

    # 대시보드 최근 Trip 개수
    RECENT_TRIP_LIMIT: int = 5


class ImportLimits:
    """Bulk Import 제한값"""

    # 영속화 단계 전체에 허용되는 시간 (초과 시 배치 전체 실패)
    PERSIST_TIMEOUT_SEC: float = 30.0


class Money:
    """금액/수량 저장 스케일

    모든 금액과 수량은 최소 단위 정수(0.01)로 저장.
    UPDATE ... SET col = col + ? 로 원자적 증감이 가능하도록 하기 위함.
    """

    SCALE: int = 100
    QUANTUM: Decimal = Decimal("0.01")


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    DEFAULT_DB: Path = DATA_DIR / "fleetledger.db"
