"""
pytest 공통 fixture 정의

- 임시 디렉토리 / settings.yaml
- In-memory Ledger 저장소 + 기본 사업장/상품
"""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from adapters.mock.ledger_store import InMemoryLedgerStore
from adapters.mock.notifier import MockNotifier
from core.config.loader import Settings
from core.ledger.models import Business, Product


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    settings_content = """# 테스트용 settings.yaml
mode: development

database:
  path: null

ledger:
  optimistic_writes: true
  max_write_retries: 5

logging:
  console_level: debug
  file_level: INFO

alerts:
  slack_webhook_url: "https://hooks.slack.com/services/test"
"""
    settings_path = temp_dir / "settings.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest.fixture
def temp_settings_file_minimal(temp_dir: Path) -> Path:
    """mode만 있는 settings.yaml (나머지는 기본값)"""
    settings_path = temp_dir / "settings_minimal.yaml"
    settings_path.write_text("mode: production\n", encoding="utf-8")
    return settings_path


@pytest.fixture
def temp_settings_file_invalid_mode(temp_dir: Path) -> Path:
    """잘못된 모드의 settings.yaml"""
    settings_path = temp_dir / "settings_invalid.yaml"
    settings_path.write_text("mode: staging\n", encoding="utf-8")
    return settings_path


@pytest.fixture(autouse=True)
def reset_settings_singleton() -> None:
    """테스트 간 Settings 싱글턴 격리"""
    Settings.reset()
    yield
    Settings.reset()


# -------------------------------------------------------------------------
# Ledger fixture
# -------------------------------------------------------------------------

@pytest.fixture
def store() -> InMemoryLedgerStore:
    """In-memory Ledger 저장소"""
    return InMemoryLedgerStore()


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def business(store: InMemoryLedgerStore) -> Business:
    """잔고 5,000,000 사업장"""
    return store.add_business(balance=Decimal("5000000"), name="Coffee Roasters")


@pytest.fixture
def product(store: InMemoryLedgerStore, business: Business) -> Product:
    """재고 12 상품 (active)"""
    return store.add_product(
        business.id,
        stock=12,
        name="House Blend 1kg",
        purchase_price=Decimal("60000"),
        selling_price=Decimal("75000"),
    )
