"""
설정 로더

settings.yaml 로드 및 런타임 설정 생성
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from core.constants import Defaults, ImportLimits, Paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """런타임 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    db_path: Path = Paths.DEFAULT_DB
    bulk_import_timeout_sec: float = ImportLimits.PERSIST_TIMEOUT_SEC
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS
    log_level: str = Defaults.LOG_LEVEL
    log_dir: Path = field(default=Paths.LOGS_DIR)


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _positive_number(data: dict, key: str, default: float) -> float:
    value = data.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"settings.yaml의 '{key}' 값이 숫자가 아닙니다: {value!r}") from e
    if number <= 0:
        raise SettingsLoadError(f"settings.yaml의 '{key}' 값은 0보다 커야 합니다: {value!r}")
    return number


def load_settings(path: Path | None = None) -> Settings:
    """settings.yaml 파일 로드

    파일이 없으면 기본값을 사용한다.

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 인스턴스

    Raises:
        SettingsLoadError: 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        logger.info(f"settings.yaml 없음, 기본값 사용: {path}")
        return Settings()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 mapping이어야 합니다")

    base_dir = path.parent

    def _resolve(value: str | None, default: Path) -> Path:
        if not value:
            return default
        candidate = Path(value)
        return candidate if candidate.is_absolute() else (base_dir / candidate).resolve()

    log_level = str(data.get("log_level", Defaults.LOG_LEVEL)).upper()
    if log_level not in logging.getLevelNamesMapping():
        raise SettingsLoadError(f"유효하지 않은 log_level입니다: '{log_level}'")

    return Settings(
        db_path=_resolve(data.get("db_path"), Paths.DEFAULT_DB),
        bulk_import_timeout_sec=_positive_number(
            data, "bulk_import_timeout_sec", ImportLimits.PERSIST_TIMEOUT_SEC
        ),
        busy_timeout_ms=int(_positive_number(data, "busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS)),
        log_level=log_level,
        log_dir=_resolve(data.get("log_dir"), Paths.LOGS_DIR),
    )


_settings: Settings | None = None


def get_settings(path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환 (최초 1회 로드 후 캐시)"""
    global _settings
    if _settings is None:
        _settings = load_settings(path)
    return _settings


def reset_settings() -> None:
    """캐시된 Settings 초기화 (테스트용)"""
    global _settings
    _settings = None
