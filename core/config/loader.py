"""
설정 로더

settings.yaml 로드 및 DB/Ledger/알림 설정 생성
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths
from core.types import RunMode


@dataclass(frozen=True)
class LedgerOptions:
    """Ledger 동작 옵션

    optimistic_writes가 False면 원본과 동일한 read-modify-write,
    True면 compare-and-set + 재시도로 잔고/재고를 갱신
    """

    optimistic_writes: bool = False
    max_write_retries: int = Defaults.MAX_WRITE_RETRIES


@dataclass(frozen=True)
class LoggingOptions:
    """로깅 레벨 설정"""

    console_level: str = Defaults.LOG_LEVEL
    file_level: str = Defaults.LOG_LEVEL


@dataclass(frozen=True)
class AppSettings:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    mode: RunMode
    db_path: Path
    ledger: LedgerOptions
    logging: LoggingOptions
    slack_webhook_url: str | None = None


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def get_db_path(mode: RunMode) -> Path:
    """모드에 따른 기본 DB 경로 반환

    Args:
        mode: 실행 모드

    Returns:
        DB 파일 경로 (Path 타입)
    """
    if mode == RunMode.PRODUCTION:
        return Paths.PROD_DB
    else:
        return Paths.DEV_DB


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    """하위 섹션 조회 (없거나 null이면 빈 dict)"""
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"settings.yaml의 '{key}' 섹션 형식이 잘못되었습니다")
    return value


def load_settings(path: Path | None = None) -> AppSettings:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppSettings 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식이 잘못된 경우
        ValueError: 유효하지 않은 mode인 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml이 비어 있습니다")

    # mode 검증
    mode_str = data.get("mode", Defaults.MODE)
    try:
        mode = RunMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in RunMode]
        raise ValueError(
            f"유효하지 않은 mode입니다: '{mode_str}'. "
            f"유효한 값: {valid_modes}"
        ) from e

    # DB 경로 (지정하지 않으면 모드별 기본 경로)
    db_path_str = _section(data, "database").get("path")
    db_path = Path(db_path_str) if db_path_str else get_db_path(mode)

    ledger_config = _section(data, "ledger")
    max_retries = int(ledger_config.get("max_write_retries", Defaults.MAX_WRITE_RETRIES))
    if max_retries < 1:
        raise SettingsLoadError("ledger.max_write_retries는 1 이상이어야 합니다")

    ledger = LedgerOptions(
        optimistic_writes=bool(ledger_config.get("optimistic_writes", False)),
        max_write_retries=max_retries,
    )

    logging_config = _section(data, "logging")
    logging_options = LoggingOptions(
        console_level=str(logging_config.get("console_level", Defaults.LOG_LEVEL)).upper(),
        file_level=str(logging_config.get("file_level", Defaults.LOG_LEVEL)).upper(),
    )

    webhook_url = _section(data, "alerts").get("slack_webhook_url") or None

    return AppSettings(
        mode=mode,
        db_path=db_path,
        ledger=ledger,
        logging=logging_options,
        slack_webhook_url=webhook_url,
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _settings: AppSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            self._settings = load_settings(settings_path)

    @property
    def mode(self) -> RunMode:
        """현재 실행 모드"""
        assert self._settings is not None
        return self._settings.mode

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        assert self._settings is not None
        return self._settings.db_path

    @property
    def ledger(self) -> LedgerOptions:
        """Ledger 동작 옵션"""
        assert self._settings is not None
        return self._settings.ledger

    @property
    def logging(self) -> LoggingOptions:
        """로깅 옵션"""
        assert self._settings is not None
        return self._settings.logging

    @property
    def slack_webhook_url(self) -> str | None:
        """Slack Webhook URL (없으면 None)"""
        assert self._settings is not None
        return self._settings.slack_webhook_url

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
