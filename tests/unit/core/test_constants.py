"""
core/constants.py 테스트

모든 경로가 pathlib.Path 타입이고, 상수가 정상적으로 접근 가능한지 확인
"""

from pathlib import Path

from core.constants import PROJECT_ROOT, Defaults, Paths


class TestProjectRoot:
    """PROJECT_ROOT 테스트"""

    def test_is_absolute_path(self) -> None:
        assert isinstance(PROJECT_ROOT, Path)
        assert PROJECT_ROOT.is_absolute()

    def test_contains_core_directory(self) -> None:
        assert (PROJECT_ROOT / "core").exists()


class TestPaths:
    """Paths 테스트"""

    def test_all_paths_are_path(self) -> None:
        for name in (
            "CONFIG_DIR",
            "DATA_DIR",
            "LOGS_DIR",
            "LEDGER_LOGS_DIR",
            "SCRIPTS_LOGS_DIR",
            "SETTINGS_FILE",
            "PROD_DB",
            "DEV_DB",
        ):
            assert isinstance(getattr(Paths, name), Path), name

    def test_db_files_in_data_dir(self) -> None:
        assert Paths.PROD_DB.parent == Paths.DATA_DIR
        assert Paths.DEV_DB.parent == Paths.DATA_DIR
        assert Paths.PROD_DB != Paths.DEV_DB

    def test_log_dirs_under_logs(self) -> None:
        assert Paths.LEDGER_LOGS_DIR.parent == Paths.LOGS_DIR
        assert Paths.SCRIPTS_LOGS_DIR.parent == Paths.LOGS_DIR


class TestDefaults:
    """Defaults 테스트"""

    def test_values(self) -> None:
        assert Defaults.MODE == "development"
        assert Defaults.LOG_LEVEL == "INFO"
        assert Defaults.MAX_WRITE_RETRIES >= 1
