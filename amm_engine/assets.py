"""Asset identities, amounts and pair keys.

An asset is either a native denomination handled by the host's bank module
or a token contract. Both shapes compare by (kind, payload) and encode to a
canonical byte string, which is how pairs are keyed in the registry.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from amm_engine.constants import DENOM_MAX_LENGTH, DENOM_MIN_LENGTH
from amm_engine.errors import DoublingAssets, InvalidAmount, InvalidAssetInfo
from amm_engine.safe_int import UINT128_MAX

# Contract addresses: lowercase alphanumeric, 3-128 chars
_ADDRESS_PATTERN = re.compile(r"^[a-z0-9]{3,128}$")
_DENOM_SEPARATORS = frozenset("/:._-")


class AssetKind(str, Enum):
    """Which ledger primitive holds the asset."""

    # Enum order is the tag order used by canonical encoding and sorting
    NATIVE = "native_token"
    CONTRACT = "token"

    @property
    def tag(self) -> int:
        return 0 if self is AssetKind.NATIVE else 1


def validate_native_denom(denom: str) -> None:
    """Validate a native denomination.

    Denoms are 3-128 characters long, start with an ASCII letter, and
    continue with letters, digits or one of / : . _ -

    Raises:
        InvalidAssetInfo: If the denom is malformed
    """
    if len(denom) < DENOM_MIN_LENGTH or len(denom) > DENOM_MAX_LENGTH:
        raise InvalidAssetInfo(
            f"Invalid denom length [{DENOM_MIN_LENGTH},{DENOM_MAX_LENGTH}]: {denom}"
        )
    if not (denom[0].isascii() and denom[0].isalpha()):
        raise InvalidAssetInfo(f"First character is not ASCII alphabetic: {denom}")
    for c in denom[1:]:
        if not ((c.isascii() and c.isalnum()) or c in _DENOM_SEPARATORS):
            raise InvalidAssetInfo(
                f"Not all characters are ASCII alphanumeric or one of:  /  :  .  _  -: {denom}"
            )


def is_valid_address(address: str) -> bool:
    """Check that a string is a well-formed account / contract address."""
    return bool(_ADDRESS_PATTERN.match(address))


def validate_address(address: str) -> str:
    """Return the address if well-formed.

    Raises:
        InvalidAssetInfo: If the address is malformed
    """
    if not is_valid_address(address):
        raise InvalidAssetInfo(f"Invalid address: {address!r}")
    return address


@dataclass(frozen=True, order=True)
class AssetInfo:
    """Identity of an asset: a native denom or a token contract address."""

    kind: AssetKind
    value: str

    @classmethod
    def native(cls, denom: str) -> AssetInfo:
        return cls(AssetKind.NATIVE, denom)

    @classmethod
    def contract(cls, address: str) -> AssetInfo:
        return cls(AssetKind.CONTRACT, address)

    @property
    def is_native(self) -> bool:
        return self.kind is AssetKind.NATIVE

    def as_bytes(self) -> bytes:
        """Canonical encoding: 1-byte kind tag, 2-byte length, UTF-8 payload."""
        payload = self.value.encode()
        return bytes([self.kind.tag]) + len(payload).to_bytes(2, "big") + payload

    def check(self) -> None:
        """Validate the denom or contract address.

        Raises:
            InvalidAssetInfo: If the payload is malformed
        """
        if self.is_native:
            validate_native_denom(self.value)
        else:
            validate_address(self.value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Asset:
    """An amount of a given asset."""

    info: AssetInfo
    amount: int

    def __post_init__(self) -> None:
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise InvalidAmount(f"Amount must be an int, got {type(self.amount).__name__}")
        if self.amount < 0 or self.amount > UINT128_MAX:
            raise InvalidAmount(f"Amount does not fit uint128: {self.amount}")

    @property
    def is_native(self) -> bool:
        return self.info.is_native

    def __str__(self) -> str:
        return f"{self.amount}{self.info}"


@dataclass(frozen=True)
class Coin:
    """Native funds attached to a call or a bank transfer."""

    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


def check_asset_infos(asset_infos: Sequence[AssetInfo]) -> None:
    """Validate each identity and reject duplicates.

    Raises:
        DoublingAssets: If an identity appears twice
        InvalidAssetInfo: If an identity is malformed
    """
    if len(set(asset_infos)) != len(asset_infos):
        raise DoublingAssets("Doubling assets in asset infos")
    for info in asset_infos:
        info.check()


def pair_key(asset_infos: Iterable[AssetInfo]) -> bytes:
    """Order-independent key for a set of asset identities."""
    return b"".join(sorted(info.as_bytes() for info in asset_infos))
