"""Shared fixtures for governance tests."""

import pytest

from venturedao.governance import (
    GovernanceConfig,
    GovernanceEngine,
    InMemoryLedger,
    ManualClock,
)

ADMIN = "0xadmin"
START_TIME = 1_700_000_000


@pytest.fixture
def clock():
    return ManualClock(start=START_TIME)


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def config():
    # Low proposal threshold so small stakes in tests can propose
    return GovernanceConfig(minimum_stake_to_propose=1)


@pytest.fixture
def engine(config, clock, ledger):
    return GovernanceEngine(ADMIN, config=config, clock=clock, transfer=ledger)
