"""Pytest configuration and fixtures."""

import pytest

from amm_engine.curves.base import PoolType
from amm_engine.host import Env
from amm_engine.pool.instance import PoolInstance
from amm_engine.registry import PoolRegistry
from tests.helpers import (
    ALICE,
    POOL,
    ULUNA,
    UUSD,
    InMemoryLedger,
    make_pool,
    make_registry,
    provide,
)


@pytest.fixture
def ledger() -> InMemoryLedger:
    """An empty in-memory host ledger."""
    return InMemoryLedger()


@pytest.fixture
def registry() -> PoolRegistry:
    """A registry with default pool-type policies and a fee address."""
    return make_registry()


@pytest.fixture
def pool_env() -> Env:
    """Execution context of the pool under test at block time 0."""
    return Env(POOL)


@pytest.fixture
def xyk_pool(ledger: InMemoryLedger, registry: PoolRegistry) -> PoolInstance:
    """An empty uusd/uluna constant product pool with a native LP unit."""
    return make_pool(ledger, registry)


@pytest.fixture
def funded_xyk_pool(ledger: InMemoryLedger, xyk_pool: PoolInstance) -> PoolInstance:
    """The constant product pool after ALICE deposited 1e6 of each asset."""
    provide(ledger, xyk_pool, ALICE, {UUSD: 1_000_000, ULUNA: 1_000_000})
    return xyk_pool


@pytest.fixture
def stable_pool(ledger: InMemoryLedger, registry: PoolRegistry) -> PoolInstance:
    """An empty uusd/uluna stableswap pool (amp 100, both assets 6 decimals)."""
    return make_pool(ledger, registry, pool_type=PoolType.STABLE, amp=100)


@pytest.fixture
def funded_stable_pool(ledger: InMemoryLedger, stable_pool: PoolInstance) -> PoolInstance:
    """The stableswap pool after ALICE deposited 1e6 of each asset."""
    provide(ledger, stable_pool, ALICE, {UUSD: 1_000_000, ULUNA: 1_000_000})
    return stable_pool
