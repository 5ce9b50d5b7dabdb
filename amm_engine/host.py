"""Collaborators supplied by the host environment.

The engine reads balances, supplies, token metadata and registry policy
through these protocols and receives the caller context (MessageInfo, Env)
with every entry. Test suites provide in-memory implementations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from amm_engine.assets import AssetInfo, Coin

if TYPE_CHECKING:
    from amm_engine.registry import FeePolicy, RegistryConfig


@dataclass(frozen=True)
class MessageInfo:
    """Who called and which native funds were attached."""

    sender: str
    funds: tuple[Coin, ...] = ()

    def sent_amount(self, denom: str) -> int:
        return sum(c.amount for c in self.funds if c.denom == denom)


@dataclass(frozen=True)
class Env:
    """Execution context: the executing contract and the block time in seconds."""

    contract_address: str
    block_time: int = 0


@dataclass(frozen=True)
class Reply:
    """Outcome of a deferred command, delivered back to the engine.

    Exactly one of `data` (success payload, possibly None) or `error` is
    meaningful; `error` being set marks a failed command.
    """

    id: int
    data: bytes | None = None
    error: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None


class PoolQuerier(Protocol):
    """Balance and metadata reads, queried fresh on every operation."""

    def balance(self, asset: AssetInfo, holder: str) -> int: ...

    def total_supply(self, lp_token: AssetInfo) -> int: ...

    def token_symbol(self, token_address: str) -> str: ...

    def precision(self, asset: AssetInfo) -> int: ...


class RegistryClient(Protocol):
    """Live policy lookups a pool performs against its registry."""

    def fee_policy(self, pool_type: str, pool_address: str) -> FeePolicy: ...

    def query_config(self) -> RegistryConfig: ...
