"""Host commands emitted by the engine.

The engine never moves funds. Every mutating operation returns a Response:
an ordered list of intents for the host to execute plus key/value attributes
describing what happened. Intents are plain frozen dataclasses; the host
dispatches on their type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from amm_engine.assets import Asset, Coin


@dataclass(frozen=True)
class BankSend:
    """Send native coins from the executing contract."""

    to_address: str
    amount: tuple[Coin, ...]


@dataclass(frozen=True)
class TokenTransfer:
    """Transfer contract tokens held by the executing contract."""

    token: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class TokenTransferFrom:
    """Pull contract tokens from an owner who granted an allowance."""

    token: str
    owner: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class TokenSend:
    """Transfer contract tokens and invoke the recipient's receive hook."""

    token: str
    contract: str
    amount: int
    msg: dict[str, Any]


@dataclass(frozen=True)
class TokenMint:
    token: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class TokenBurn:
    token: str
    amount: int


@dataclass(frozen=True)
class DenomCreate:
    """Create a native denom under the executing contract's namespace."""

    subdenom: str


@dataclass(frozen=True)
class DenomMint:
    denom: str
    amount: int
    recipient: str


@dataclass(frozen=True)
class DenomBurn:
    denom: str
    amount: int
    burn_from: str


@dataclass(frozen=True)
class ContractExecute:
    contract: str
    msg: dict[str, Any]
    funds: tuple[Coin, ...] = ()


@dataclass(frozen=True)
class ContractInstantiate:
    code_id: int
    msg: dict[str, Any]
    label: str
    admin: str | None = None
    funds: tuple[Coin, ...] = ()


Intent = Union[
    BankSend,
    TokenTransfer,
    TokenTransferFrom,
    TokenSend,
    TokenMint,
    TokenBurn,
    DenomCreate,
    DenomMint,
    DenomBurn,
    ContractExecute,
    ContractInstantiate,
]


class ReplyOn(str, Enum):
    """When the host should call back after running a deferred command."""

    SUCCESS = "success"
    ERROR = "error"
    ALWAYS = "always"


@dataclass(frozen=True)
class DeferredCommand:
    """A command whose outcome must be reported back through a reply entry."""

    reply_id: int
    command: Intent
    reply_on: ReplyOn = ReplyOn.SUCCESS


@dataclass
class Response:
    """Outcome of one engine entry."""

    intents: list[Intent | DeferredCommand] = field(default_factory=list)
    attributes: list[tuple[str, str]] = field(default_factory=list)

    def add_intent(self, intent: Intent | DeferredCommand) -> Response:
        self.intents.append(intent)
        return self

    def add_intents(self, intents: list[Intent]) -> Response:
        self.intents.extend(intents)
        return self

    def add_attribute(self, key: str, value: object) -> Response:
        self.attributes.append((key, str(value)))
        return self

    def add_attributes(self, pairs: list[tuple[str, object]]) -> Response:
        for key, value in pairs:
            self.add_attribute(key, value)
        return self

    def attribute(self, key: str) -> str | None:
        """First value recorded under key, or None."""
        for k, v in self.attributes:
            if k == key:
                return v
        return None

    @property
    def deferred(self) -> list[DeferredCommand]:
        return [i for i in self.intents if isinstance(i, DeferredCommand)]


def transfer_intent(asset: Asset, recipient: str) -> Intent:
    """Pay `asset` from the executing contract to `recipient`."""
    if asset.is_native:
        return BankSend(to_address=recipient, amount=(Coin(asset.info.value, asset.amount),))
    return TokenTransfer(token=asset.info.value, recipient=recipient, amount=asset.amount)


def transfer_from_intent(asset: Asset, owner: str, recipient: str) -> TokenTransferFrom:
    """Pull a contract-token `asset` from `owner` into `recipient`."""
    return TokenTransferFrom(
        token=asset.info.value, owner=owner, recipient=recipient, amount=asset.amount
    )
