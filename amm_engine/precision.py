"""Asset precision table and rescaling.

Stableswap math runs on balances normalised to 18 decimal places. The
table maps each pool asset to its decimals, is filled once when the pool is
created, and never changes afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field

from amm_engine.assets import Asset, AssetInfo, AssetKind
from amm_engine.constants import MAX_PRECISION
from amm_engine.errors import InvalidAsset, InvalidPrecision
from amm_engine.math.decimal import Decimal256
from amm_engine.safe_int import S
from amm_engine.types import Precision


def adjust_precision(value: int, current_precision: int, new_precision: int) -> int:
    """Rescale an integer amount between decimal precisions.

    Scaling down truncates toward zero.
    """
    if current_precision == new_precision:
        return value
    if current_precision < new_precision:
        return (S(value) * 10 ** (new_precision - current_precision)).to_uint128()
    return value // 10 ** (current_precision - new_precision)


def _table_key(info: AssetInfo) -> str:
    return f"{info.kind.value}:{info.value}"


class PrecisionTable(BaseModel):
    """AssetInfo -> decimals, plus the greatest precision in the pool."""

    precisions: dict[str, Precision] = Field(default_factory=dict)
    greatest_precision: Precision = 0

    @classmethod
    def build(cls, entries: Iterable[tuple[AssetInfo, int]]) -> PrecisionTable:
        """Build a table from (asset, decimals) pairs.

        Raises:
            InvalidPrecision: If any decimals fall outside [0, 18]
        """
        precisions: dict[str, int] = {}
        for info, decimals in entries:
            if not 0 <= decimals <= MAX_PRECISION:
                raise InvalidPrecision(
                    f"Precision of {info} must be within [0, {MAX_PRECISION}], got {decimals}"
                )
            precisions[_table_key(info)] = decimals
        return cls(precisions=precisions, greatest_precision=max(precisions.values(), default=0))

    def get(self, info: AssetInfo) -> int:
        """Decimals of an asset.

        Raises:
            InvalidAsset: If the asset is not part of the table
        """
        try:
            return self.precisions[_table_key(info)]
        except KeyError:
            raise InvalidAsset(f"No precision recorded for {info}") from None

    def to_decimal(self, asset: Asset) -> Decimal256:
        """Normalise an asset amount to an 18-place decimal."""
        return Decimal256.with_precision(asset.amount, self.get(asset.info))

    def as_mapping(self) -> Mapping[AssetInfo, int]:
        out: dict[AssetInfo, int] = {}
        for key, decimals in self.precisions.items():
            kind, _, value = key.partition(":")
            out[AssetInfo(AssetKind(kind), value)] = decimals
        return out
