"""Shared pytest fixtures for Mortgage CRM tests.

Fixtures:
    - kv_store: Fresh in-memory key-value store
    - repository: Deal repository over kv_store
    - sample_deal / sample_old_lead / sample_active_deal: Sample Deal records
    - loaded_store: DealStore holding the three samples
    - mock_config: Test configuration with temp paths
"""

from datetime import date, datetime
from pathlib import Path
from typing import Generator

import pytest

from mortgage_crm.core.config import Config, reset_config
from mortgage_crm.db.models import Deal, DealType, NeedsItem, Stage
from mortgage_crm.db.storage import DealRepository, KeyValueStore
from mortgage_crm.engine.store import DealStore

# 2025-01-01 is a Wednesday
JAN_1 = datetime(2025, 1, 1, 9, 30)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point every default path at the test's temp dir."""
    monkeypatch.setenv("MORTGAGE_CRM_DB_PATH", str(tmp_path / "store.db"))
    monkeypatch.setenv("MORTGAGE_CRM_LOG_PATH", str(tmp_path / "logs"))
    monkeypatch.setenv("MORTGAGE_CRM_BACKUP_PATH", str(tmp_path / "backups"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def kv_store() -> Generator[KeyValueStore, None, None]:
    """Create an in-memory store for fast tests.

    Yields:
        KeyValueStore using :memory:, no cleanup needed
    """
    store = KeyValueStore(":memory:")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def repository(kv_store: KeyValueStore) -> DealRepository:
    """Deal repository over the in-memory store."""
    return DealRepository(kv_store, key="test_deals")


@pytest.fixture
def sample_deal() -> Deal:
    """Active lead created on 2025-01-01."""
    return Deal(
        id="deal_lead",
        name="Smith Family Home Purchase",
        type=DealType.PURCHASE,
        referral="Agent Kim Lee",
        stage=Stage.ACTIVE_LEAD,
        created_at=JAN_1,
        stage_entered_at=JAN_1,
    )


@pytest.fixture
def sample_old_lead() -> Deal:
    """Old lead that entered its stage on 2025-01-01, never followed up."""
    return Deal(
        id="deal_old",
        name="Garcia Refi",
        type=DealType.REFINANCE,
        referral="Past client",
        stage=Stage.OLD_LEAD,
        created_at=datetime(2024, 11, 15, 14, 0),
        stage_entered_at=JAN_1,
    )


@pytest.fixture
def sample_active_deal() -> Deal:
    """Active deal with one open and one received needs item."""
    return Deal(
        id="deal_active",
        name="Nguyen Condo",
        type=DealType.PURCHASE,
        referral="",
        stage=Stage.ACTIVE_DEAL,
        created_at=datetime(2024, 12, 1, 10, 0),
        stage_entered_at=datetime(2024, 12, 20, 10, 0),
        needs_list=[
            NeedsItem(id="n1", text="2023 W-2", done=False, added_at=datetime(2024, 12, 21, 8, 0)),
            NeedsItem(
                id="n2", text="Bank statements", done=True, added_at=datetime(2024, 12, 21, 8, 5)
            ),
        ],
        notes="Closing early March",
    )


@pytest.fixture
def loaded_store(
    sample_deal: Deal,
    sample_old_lead: Deal,
    sample_active_deal: Deal,
) -> DealStore:
    """In-memory store pre-populated with sample data.

    Contains:
        - 1 active lead (Smith)
        - 1 old lead (Garcia)
        - 1 active deal with an open needs item (Nguyen)
    """
    store = DealStore()
    for deal in (sample_deal, sample_old_lead, sample_active_deal):
        store.add(deal)
    return store


@pytest.fixture
def mock_config(tmp_path: Path) -> Config:
    """Test configuration with temp paths."""
    return Config(
        db_path=tmp_path / "test.db",
        backup_path=tmp_path / "backups",
        log_path=tmp_path / "logs",
        debug=True,
    )


# Markers for different test types
def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "database: marks tests requiring database")
