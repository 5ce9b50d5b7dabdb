"""Test helpers module for shared test utilities.

- constants: Asset identities, account addresses and code ids
- ledger: In-memory host that answers queries and executes intents
- factories: Registry, pool and deposit factory functions
"""

from tests.helpers.constants import (
    ALICE,
    BOB,
    COLLECTOR,
    CONTROLLER,
    FEE_ADDRESS,
    LP_TOKEN,
    OWNER,
    POOL,
    REGISTRY,
    TOKEN_A,
    TOKEN_B,
    UATOM,
    ULUNA,
    UUSD,
)
from tests.helpers.factories import (
    make_pool,
    make_pool_type_configs,
    make_registry,
    provide,
    register_pool,
    swap_native,
)
from tests.helpers.ledger import InMemoryLedger, LedgerError

__all__ = [
    # Constants
    "UUSD",
    "ULUNA",
    "UATOM",
    "TOKEN_A",
    "TOKEN_B",
    "OWNER",
    "ALICE",
    "BOB",
    "REGISTRY",
    "POOL",
    "FEE_ADDRESS",
    "CONTROLLER",
    "COLLECTOR",
    "LP_TOKEN",
    # Ledger
    "InMemoryLedger",
    "LedgerError",
    # Factories
    "make_pool",
    "make_pool_type_configs",
    "make_registry",
    "provide",
    "register_pool",
    "swap_native",
]
