"""Pool registry: pool-type policies, pair bindings and two-phase pool creation.

Creating a pool spans two entries into the registry:

1. create() validates the request, records a PendingCreation slot and
   returns a deferred "instantiate, reply on success" command.
2. The host runs the command and re-enters through confirm_creation() with
   the reply. The registry decodes the new pool's address, binds it to the
   pair and clears the slot.

Nothing is kept in memory between the two entries: the slot lives in
RegistryState, which the host persists (model_dump_json) and may reload
(PoolRegistry.from_json) before confirming. If the host aborts the
transaction the slot is rolled back with it; an unconfirmed slot left
behind is overwritten by the next create() call.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog
from pydantic import BaseModel, Field

from amm_engine.assets import AssetInfo, check_asset_infos, pair_key, validate_address
from amm_engine.codec import parse_instantiate_response
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.constants import (
    FEE_BPS_DENOMINATOR,
    INSTANTIATE_POOL_REPLY_ID,
    MAX_TOTAL_FEE_BPS,
    N_COINS,
)
from amm_engine.curves.base import PoolType
from amm_engine.errors import (
    DuplicateConfirmation,
    FailedToParseReply,
    InvalidAssetInfo,
    InvalidFeeBps,
    InvalidNumberOfAssets,
    InvalidState,
    NoPendingCreation,
    PairAlreadyRegistered,
    PairNotFound,
    PoolNotRegistered,
    PoolTypeConfigDuplicate,
    PoolTypeDisabled,
    PoolTypeNotFound,
    Unauthorized,
)
from amm_engine.host import Env, MessageInfo, Reply
from amm_engine.intents import ContractInstantiate, DeferredCommand, ReplyOn, Response
from amm_engine.messages import FeeInfoResponse, PoolInstantiateMsg

logger = structlog.get_logger()

POOL_LABEL = "AMM Pool"


class PoolTypeConfig(BaseModel):
    """Policy for one pool type."""

    template_id: int = Field(ge=0)
    pool_type: PoolType
    total_fee_bps: int = Field(ge=0)
    enabled: bool = True
    rewards_eligible: bool = True

    def check(self) -> None:
        """Raises InvalidFeeBps when the fee exceeds 100%."""
        if self.total_fee_bps > MAX_TOTAL_FEE_BPS:
            raise InvalidFeeBps(
                f"Total fee bps must be at most {MAX_TOTAL_FEE_BPS}, got {self.total_fee_bps}"
            )

    @property
    def total_fee_rate(self) -> Decimal:
        return Decimal(self.total_fee_bps) / FEE_BPS_DENOMINATOR


class RegistryConfig(BaseModel):
    owner: str
    token_code_id: int = Field(ge=0)
    fee_address: str | None = None
    controller_address: str | None = None


class FeePolicy(BaseModel):
    """Live policy a pool applies to one operation."""

    owner: str
    total_fee_rate: Decimal
    controller_address: str | None = None
    rewards_collector_address: str | None = None
    fee_address: str | None = None


class PendingCreation(BaseModel):
    """The single in-flight creation request."""

    pair_key: str
    asset_infos: list[AssetInfo]
    pool_type: PoolType


class PoolRecord(BaseModel):
    """A confirmed pair -> pool binding."""

    pair_key: str
    pool_address: str
    asset_infos: list[AssetInfo]
    pool_type: PoolType


class RegistryState(BaseModel):
    """Everything the registry persists between entries."""

    contract_address: str
    config: RegistryConfig
    pool_types: dict[PoolType, PoolTypeConfig] = Field(default_factory=dict)
    # Keyed by hex-encoded pair key
    pairs: dict[str, PoolRecord] = Field(default_factory=dict)
    created_pools: list[str] = Field(default_factory=list)
    rewards_collectors: dict[str, str] = Field(default_factory=dict)
    pending: PendingCreation | None = None


def _key(asset_infos: Sequence[AssetInfo]) -> str:
    return pair_key(asset_infos).hex()


def _pool_type(value: PoolType | str) -> PoolType:
    try:
        return PoolType(value)
    except ValueError as exc:
        raise PoolTypeNotFound(f"Unknown pool type: {value}") from exc


def _check_pair(asset_infos: Sequence[AssetInfo]) -> None:
    if len(asset_infos) != N_COINS:
        raise InvalidNumberOfAssets(N_COINS)
    check_asset_infos(asset_infos)


class PoolRegistry:
    """Catalog of pool-type policies and canonical pair bindings."""

    def __init__(self, state: RegistryState, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> None:
        self.state = state
        self.engine_config = config

    # --- Lifecycle ---

    @classmethod
    def instantiate(
        cls,
        env: Env,
        owner: str,
        pool_configs: Sequence[PoolTypeConfig],
        token_code_id: int,
        fee_address: str | None = None,
        controller_address: str | None = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> PoolRegistry:
        """Create a registry.

        Raises:
            PoolTypeConfigDuplicate: If a pool type is configured twice
            InvalidFeeBps: If a pool type's fee exceeds 100%
            InvalidAssetInfo: If an address is malformed
        """
        pool_types: dict[PoolType, PoolTypeConfig] = {}
        for pool_config in pool_configs:
            if pool_config.pool_type in pool_types:
                raise PoolTypeConfigDuplicate(f"Pool type {pool_config.pool_type.value} configured twice")
            pool_config.check()
            pool_types[pool_config.pool_type] = pool_config

        state = RegistryState(
            contract_address=env.contract_address,
            config=RegistryConfig(
                owner=validate_address(owner),
                token_code_id=token_code_id,
                fee_address=validate_address(fee_address) if fee_address else None,
                controller_address=validate_address(controller_address) if controller_address else None,
            ),
            pool_types=pool_types,
        )
        logger.debug(
            "registry_instantiated",
            registry=env.contract_address,
            owner=owner,
            pool_types=[t.value for t in pool_types],
        )
        return cls(state, config)

    @classmethod
    def from_json(cls, data: str | bytes, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> PoolRegistry:
        """Rebuild a registry from a state dump."""
        return cls(RegistryState.model_validate_json(data), config)

    def to_json(self) -> str:
        return self.state.model_dump_json()

    def _assert_owner(self, info: MessageInfo) -> None:
        if info.sender != self.state.config.owner:
            raise Unauthorized(f"{info.sender} is not the registry owner")

    # --- Creation protocol ---

    def create(
        self,
        info: MessageInfo,
        env: Env,
        pool_type: PoolType | str,
        asset_infos: Sequence[AssetInfo],
        init_params: dict | None = None,
        token_lp: bool = False,
    ) -> Response:
        """Request a new pool for a pair.

        Returns a deferred ContractInstantiate command; the host must report
        its outcome through confirm_creation().

        Raises:
            InvalidNumberOfAssets, DoublingAssets, InvalidAssetInfo: If the
                pair is malformed
            PairAlreadyRegistered: If the pair is already bound to a pool
            PoolTypeNotFound: If the pool type is unknown or not configured
            PoolTypeDisabled: If the pool type is disabled
        """
        pool_type = _pool_type(pool_type)
        _check_pair(asset_infos)

        key = _key(asset_infos)
        if key in self.state.pairs:
            raise PairAlreadyRegistered(f"Pair {key} is already registered")

        pool_config = self.state.pool_types.get(pool_type)
        if pool_config is None:
            raise PoolTypeNotFound(f"Pool type {pool_type.value} is not configured")
        if not pool_config.enabled:
            raise PoolTypeDisabled(f"Pool type {pool_type.value} is disabled")

        stale = self.state.pending
        if stale is not None:
            logger.warning(
                "registry_pending_overwritten",
                stale_pair_key=stale.pair_key,
                pair_key=key,
            )
        self.state.pending = PendingCreation(
            pair_key=key, asset_infos=list(asset_infos), pool_type=pool_type
        )

        msg = PoolInstantiateMsg(
            asset_infos=list(asset_infos),
            registry_addr=env.contract_address,
            pool_type=pool_type,
            init_params=init_params,
            token_code_id=self.state.config.token_code_id if token_lp else None,
        )
        command = ContractInstantiate(
            code_id=pool_config.template_id,
            msg=msg.model_dump(mode="json"),
            label=POOL_LABEL,
            admin=self.state.config.owner,
            funds=info.funds,
        )

        logger.debug("registry_create_requested", pair_key=key, pool_type=pool_type.value)
        return (
            Response()
            .add_intent(DeferredCommand(INSTANTIATE_POOL_REPLY_ID, command, ReplyOn.SUCCESS))
            .add_attribute("action", "create_pair")
            .add_attribute("pair", "-".join(str(a) for a in asset_infos))
        )

    def confirm_creation(self, reply: Reply) -> Response:
        """Bind the pool the host instantiated for the pending request.

        Raises:
            InvalidState: If the reply does not answer a pool instantiation
            FailedToParseReply: If the reply is an error, carries no data or
                cannot be decoded; the pending slot is kept
            NoPendingCreation: If no creation is in flight
            DuplicateConfirmation: If the pair is already bound
        """
        if reply.id != INSTANTIATE_POOL_REPLY_ID:
            raise InvalidState(f"Unexpected reply id {reply.id} for pool creation")
        if not reply.is_ok or reply.data is None:
            raise FailedToParseReply(f"Pool instantiation did not succeed: {reply.error}")

        pending = self.state.pending
        if pending is None:
            raise NoPendingCreation("No pool creation is awaiting confirmation")
        if pending.pair_key in self.state.pairs:
            raise DuplicateConfirmation(f"Pair {pending.pair_key} is already registered")

        response = parse_instantiate_response(reply.data)
        try:
            pool_address = validate_address(response.contract_address)
        except InvalidAssetInfo as err:
            raise FailedToParseReply(str(err)) from err

        self.state.created_pools.append(pool_address)
        self.state.pairs[pending.pair_key] = PoolRecord(
            pair_key=pending.pair_key,
            pool_address=pool_address,
            asset_infos=pending.asset_infos,
            pool_type=pending.pool_type,
        )
        self.state.pending = None

        logger.debug("registry_pool_registered", pair_key=pending.pair_key, pool=pool_address)
        return (
            Response()
            .add_attribute("action", "register")
            .add_attribute("pair_contract_addr", pool_address)
        )

    def deregister(self, info: MessageInfo, asset_infos: Sequence[AssetInfo]) -> Response:
        """Remove a pair binding; the pool itself keeps running.

        Raises:
            Unauthorized: If the sender is not the owner
            PairNotFound: If the pair is not bound
        """
        _check_pair(asset_infos)
        self._assert_owner(info)

        key = _key(asset_infos)
        record = self.state.pairs.pop(key, None)
        if record is None:
            raise PairNotFound(f"No pool registered for pair {key}")

        logger.debug("registry_pool_deregistered", pair_key=key, pool=record.pool_address)
        return (
            Response()
            .add_attribute("action", "deregister")
            .add_attribute("pair_contract_addr", record.pool_address)
        )

    # --- Administration ---

    def update_config(
        self,
        info: MessageInfo,
        token_code_id: int | None = None,
        fee_address: str | None = None,
        controller_address: str | None = None,
    ) -> Response:
        """Update registry settings.

        The controller address is always replaced: omitting it removes the
        controller. Other fields are kept when omitted.
        """
        self._assert_owner(info)
        config = self.state.config
        new_config = config.model_copy(
            update={
                "token_code_id": config.token_code_id if token_code_id is None else token_code_id,
                "fee_address": validate_address(fee_address) if fee_address else config.fee_address,
                "controller_address": validate_address(controller_address)
                if controller_address
                else None,
            }
        )
        self.state.config = new_config
        return Response().add_attribute("action", "update_config")

    def update_pool_type_config(self, info: MessageInfo, pool_config: PoolTypeConfig) -> Response:
        self._assert_owner(info)
        pool_config.check()
        self.state.pool_types[pool_config.pool_type] = pool_config
        logger.debug(
            "registry_pool_type_updated",
            pool_type=pool_config.pool_type.value,
            enabled=pool_config.enabled,
            total_fee_bps=pool_config.total_fee_bps,
        )
        return Response().add_attribute("action", "update_pair_config")

    def register_rewards_collector(self, info: MessageInfo, pool_address: str, collector: str) -> Response:
        """Route a pool's commission to a rewards collector.

        Raises:
            Unauthorized: If the sender is not the owner
            PoolNotRegistered: If the pool was not created by this registry
        """
        self._assert_owner(info)
        if pool_address not in self.state.created_pools:
            raise PoolNotRegistered(f"{pool_address} was not created by this registry")
        self.state.rewards_collectors[pool_address] = validate_address(collector)
        return (
            Response()
            .add_attribute("action", "register_rewards_collector")
            .add_attribute("pool", pool_address)
            .add_attribute("collector", collector)
        )

    # --- Queries ---

    def query_config(self) -> RegistryConfig:
        return self.state.config

    def query_pool_type_configs(self) -> list[PoolTypeConfig]:
        return [self.state.pool_types[t] for t in sorted(self.state.pool_types, key=lambda t: t.value)]

    def query_pair(self, asset_infos: Sequence[AssetInfo]) -> PoolRecord:
        """Raises PairNotFound if the pair is not bound."""
        key = _key(asset_infos)
        record = self.state.pairs.get(key)
        if record is None:
            raise PairNotFound(f"No pool registered for pair {key}")
        return record

    def query_pairs(
        self, start_after: Sequence[AssetInfo] | None = None, limit: int | None = None
    ) -> list[PoolRecord]:
        """Bound pairs ordered by pair key, paginated."""
        page = min(
            self.engine_config.default_pairs_limit if limit is None else limit,
            self.engine_config.max_pairs_limit,
        )
        keys = sorted(self.state.pairs)
        if start_after is not None:
            start = _key(start_after)
            keys = [k for k in keys if k > start]
        return [self.state.pairs[k] for k in keys[:page]]

    def query_fee_info(self, pool_type: PoolType) -> FeeInfoResponse:
        pool_config = self._pool_config(pool_type)
        return FeeInfoResponse(
            fee_address=self.state.config.fee_address,
            total_fee_bps=pool_config.total_fee_bps,
        )

    def query_blacklisted_pool_types(self) -> list[PoolType]:
        """Pool types that are disabled or not eligible for rewards."""
        return [
            t
            for t in sorted(self.state.pool_types, key=lambda t: t.value)
            if not self.state.pool_types[t].enabled or not self.state.pool_types[t].rewards_eligible
        ]

    def pending_creation(self) -> PendingCreation | None:
        return self.state.pending

    def fee_policy(self, pool_type: PoolType | str, pool_address: str) -> FeePolicy:
        """Policy a pool applies to a swap or liquidity change."""
        pool_config = self._pool_config(_pool_type(pool_type))
        config = self.state.config

        collector = None
        if config.controller_address is not None and pool_config.rewards_eligible:
            collector = self.state.rewards_collectors.get(pool_address)

        return FeePolicy(
            owner=config.owner,
            total_fee_rate=pool_config.total_fee_rate,
            controller_address=config.controller_address,
            rewards_collector_address=collector,
            fee_address=config.fee_address,
        )

    def _pool_config(self, pool_type: PoolType) -> PoolTypeConfig:
        pool_config = self.state.pool_types.get(pool_type)
        if pool_config is None:
            raise PoolTypeNotFound(f"Pool type {pool_type.value} is not configured")
        return pool_config
