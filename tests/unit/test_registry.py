"""Tests for the pool registry: policies, pair bindings and two-phase creation."""

import pytest
from structlog.testing import capture_logs

from amm_engine.assets import Coin, pair_key
from amm_engine.codec import encode_instantiate_response
from amm_engine.config import EngineConfig
from amm_engine.curves.base import PoolType
from amm_engine.errors import (
    DuplicateConfirmation,
    FailedToParseReply,
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
from amm_engine.intents import ContractInstantiate, ReplyOn
from amm_engine.messages import PoolInstantiateMsg
from amm_engine.registry import PoolRegistry, PoolTypeConfig
from tests.helpers import (
    ALICE,
    COLLECTOR,
    CONTROLLER,
    FEE_ADDRESS,
    OWNER,
    POOL,
    REGISTRY,
    TOKEN_A,
    UATOM,
    ULUNA,
    UUSD,
    make_pool_type_configs,
    make_registry,
    register_pool,
)
from tests.helpers.constants import STABLE_CODE_ID, TOKEN_CODE_ID, XYK_CODE_ID


def create(registry, asset_infos=(UUSD, ULUNA), pool_type=PoolType.XYK, **kwargs):
    return registry.create(MessageInfo(OWNER), Env(REGISTRY), pool_type, list(asset_infos), **kwargs)


def ok_reply(address=POOL):
    return Reply(1, data=encode_instantiate_response(address))


class TestInstantiate:
    def test_defaults(self, registry):
        config = registry.query_config()
        assert config.owner == OWNER
        assert config.token_code_id == TOKEN_CODE_ID
        assert config.fee_address == FEE_ADDRESS
        assert config.controller_address is None
        assert [c.pool_type for c in registry.query_pool_type_configs()] == [PoolType.STABLE, PoolType.XYK]

    def test_duplicate_pool_type(self):
        configs = make_pool_type_configs() + [
            PoolTypeConfig(template_id=99, pool_type=PoolType.XYK, total_fee_bps=10)
        ]
        with pytest.raises(PoolTypeConfigDuplicate):
            make_registry(pool_configs=configs)

    def test_fee_above_100_percent(self):
        with pytest.raises(InvalidFeeBps):
            make_registry(pool_configs=make_pool_type_configs(xyk_fee_bps=10_001))

    def test_fee_info(self, registry):
        info = registry.query_fee_info(PoolType.STABLE)
        assert info.total_fee_bps == 5
        assert info.fee_address == FEE_ADDRESS


class TestCreate:
    """First phase: validation and the deferred instantiate command."""

    def test_deferred_command(self, registry):
        response = create(registry, init_params={"amp": 100}, pool_type=PoolType.STABLE)

        [deferred] = response.deferred
        assert deferred.reply_id == 1
        assert deferred.reply_on is ReplyOn.SUCCESS
        command = deferred.command
        assert isinstance(command, ContractInstantiate)
        assert command.code_id == STABLE_CODE_ID
        assert command.admin == OWNER
        assert command.label == "AMM Pool"
        assert response.attribute("action") == "create_pair"
        assert response.attribute("pair") == "uusd-uluna"

    def test_command_message_decodes(self, registry):
        response = create(registry, token_lp=True)
        msg = PoolInstantiateMsg.model_validate(response.deferred[0].command.msg)

        assert msg.asset_infos == [UUSD, ULUNA]
        assert msg.registry_addr == REGISTRY
        assert msg.pool_type is PoolType.XYK
        assert msg.token_code_id == TOKEN_CODE_ID

    def test_funds_forwarded(self, registry):
        info = MessageInfo(OWNER, funds=(Coin("uusd", 10),))
        response = registry.create(info, Env(REGISTRY), PoolType.XYK, [UUSD, ULUNA])
        assert response.deferred[0].command.funds == (Coin("uusd", 10),)

    def test_records_pending_slot(self, registry):
        create(registry)
        pending = registry.pending_creation()
        assert pending.pair_key == pair_key([UUSD, ULUNA]).hex()
        assert pending.pool_type is PoolType.XYK

    def test_anyone_can_create(self, registry):
        registry.create(MessageInfo(ALICE), Env(REGISTRY), PoolType.XYK, [UUSD, ULUNA])
        assert registry.pending_creation() is not None

    def test_unknown_pool_type(self):
        registry = make_registry(pool_configs=make_pool_type_configs()[:1])
        with pytest.raises(PoolTypeNotFound):
            create(registry, pool_type=PoolType.STABLE)

    def test_disabled_pool_type(self, registry):
        registry.update_pool_type_config(
            MessageInfo(OWNER),
            PoolTypeConfig(template_id=XYK_CODE_ID, pool_type=PoolType.XYK, total_fee_bps=30, enabled=False),
        )
        with pytest.raises(PoolTypeDisabled):
            create(registry)
        assert registry.pending_creation() is None

    def test_already_registered_in_either_order(self, registry):
        register_pool(registry)
        with pytest.raises(PairAlreadyRegistered):
            create(registry, asset_infos=(ULUNA, UUSD))
        assert registry.pending_creation() is None

    def test_pool_type_given_as_string(self, registry):
        create(registry, pool_type="xyk")
        assert registry.pending_creation().pool_type is PoolType.XYK

    def test_unknown_pool_type_string(self, registry):
        with pytest.raises(PoolTypeNotFound):
            create(registry, pool_type="weighted")
        assert registry.pending_creation() is None

    def test_single_asset(self, registry):
        with pytest.raises(InvalidNumberOfAssets):
            create(registry, asset_infos=(UUSD,))

    def test_overwriting_pending_slot_warns(self, registry):
        create(registry)
        with capture_logs() as logs:
            create(registry, asset_infos=(UUSD, UATOM))

        assert registry.pending_creation().pair_key == pair_key([UUSD, UATOM]).hex()
        [warning] = [e for e in logs if e["event"] == "registry_pending_overwritten"]
        assert warning["log_level"] == "warning"
        assert warning["stale_pair_key"] == pair_key([UUSD, ULUNA]).hex()


class TestConfirmCreation:
    """Second phase: binding the instantiated pool."""

    def test_binds_pair(self, registry):
        create(registry)
        response = registry.confirm_creation(ok_reply())

        assert response.attribute("action") == "register"
        assert response.attribute("pair_contract_addr") == POOL
        assert registry.pending_creation() is None
        record = registry.query_pair([ULUNA, UUSD])
        assert record.pool_address == POOL
        assert record.asset_infos == [UUSD, ULUNA]

    def test_survives_reload_between_phases(self, registry):
        create(registry)
        reloaded = PoolRegistry.from_json(registry.to_json())

        reloaded.confirm_creation(ok_reply())

        assert reloaded.query_pair([UUSD, ULUNA]).pool_address == POOL
        assert reloaded.state.created_pools == [POOL]

    def test_wrong_reply_id(self, registry):
        create(registry)
        with pytest.raises(InvalidState):
            registry.confirm_creation(Reply(7, data=encode_instantiate_response(POOL)))

    @pytest.mark.parametrize(
        "reply",
        [
            Reply(1, error="out of gas"),
            Reply(1),
            Reply(1, data=b"\x0a\x05abc"),
            Reply(1, data=encode_instantiate_response("NOT AN ADDRESS")),
        ],
    )
    def test_bad_reply_keeps_slot(self, registry, reply):
        create(registry)
        with pytest.raises(FailedToParseReply):
            registry.confirm_creation(reply)
        assert registry.pending_creation() is not None

    def test_no_pending_creation(self, registry):
        with pytest.raises(NoPendingCreation):
            registry.confirm_creation(ok_reply())

    def test_second_confirmation(self, registry):
        create(registry)
        registry.confirm_creation(ok_reply())
        with pytest.raises(NoPendingCreation):
            registry.confirm_creation(ok_reply("pool0002"))

    def test_duplicate_confirmation(self, registry):
        create(registry)
        stale = registry.to_json()
        registry.confirm_creation(ok_reply())

        # Slot restored from a dump taken before the first confirmation
        registry.state.pending = PoolRegistry.from_json(stale).pending_creation()
        with pytest.raises(DuplicateConfirmation):
            registry.confirm_creation(ok_reply("pool0002"))
        assert registry.query_pair([UUSD, ULUNA]).pool_address == POOL


class TestDeregister:
    def test_removes_binding(self, registry):
        register_pool(registry)
        response = registry.deregister(MessageInfo(OWNER), [UUSD, ULUNA])

        assert response.attribute("pair_contract_addr") == POOL
        with pytest.raises(PairNotFound):
            registry.query_pair([UUSD, ULUNA])

    def test_pair_can_be_recreated(self, registry):
        register_pool(registry)
        registry.deregister(MessageInfo(OWNER), [UUSD, ULUNA])
        register_pool(registry, pool_address="pool0002")
        assert registry.query_pair([UUSD, ULUNA]).pool_address == "pool0002"

    def test_requires_owner(self, registry):
        register_pool(registry)
        with pytest.raises(Unauthorized):
            registry.deregister(MessageInfo(ALICE), [UUSD, ULUNA])

    def test_unknown_pair(self, registry):
        with pytest.raises(PairNotFound):
            registry.deregister(MessageInfo(OWNER), [UUSD, ULUNA])


class TestQueryPairs:
    """Pair listings are ordered by pair key and paginated."""

    PAIRS = [
        ((UUSD, ULUNA), "pool0001"),
        ((UUSD, UATOM), "pool0002"),
        ((ULUNA, UATOM), "pool0003"),
        ((TOKEN_A, UUSD), "pool0004"),
    ]

    @pytest.fixture
    def populated(self):
        registry = make_registry(config=EngineConfig(default_pairs_limit=2, max_pairs_limit=3))
        for asset_infos, address in self.PAIRS:
            register_pool(registry, asset_infos=asset_infos, pool_address=address)
        return registry

    def expected_order(self):
        return [address for _, address in sorted(self.PAIRS, key=lambda p: pair_key(p[0]))]

    def test_default_page(self, populated):
        assert [r.pool_address for r in populated.query_pairs()] == self.expected_order()[:2]

    def test_limit_is_capped(self, populated):
        assert len(populated.query_pairs(limit=100)) == 3

    def test_start_after(self, populated):
        first = populated.query_pairs(limit=1)[0]
        rest = populated.query_pairs(start_after=first.asset_infos, limit=3)
        assert [r.pool_address for r in rest] == self.expected_order()[1:]

    def test_empty(self, registry):
        assert registry.query_pairs() == []


class TestAdministration:
    def test_update_config(self, registry):
        registry.update_config(MessageInfo(OWNER), token_code_id=21, controller_address=CONTROLLER)
        config = registry.query_config()
        assert config.token_code_id == 21
        assert config.fee_address == FEE_ADDRESS
        assert config.controller_address == CONTROLLER

    def test_omitted_controller_is_removed(self):
        registry = make_registry(controller_address=CONTROLLER)
        registry.update_config(MessageInfo(OWNER), fee_address="newfees")

        config = registry.query_config()
        assert config.controller_address is None
        assert config.fee_address == "newfees"

    def test_update_config_requires_owner(self, registry):
        with pytest.raises(Unauthorized):
            registry.update_config(MessageInfo(ALICE), token_code_id=21)

    def test_update_pool_type_config(self, registry):
        registry.update_pool_type_config(
            MessageInfo(OWNER), PoolTypeConfig(template_id=12, pool_type=PoolType.STABLE, total_fee_bps=4)
        )
        assert registry.query_fee_info(PoolType.STABLE).total_fee_bps == 4

    def test_update_pool_type_config_checks_fee(self, registry):
        with pytest.raises(InvalidFeeBps):
            registry.update_pool_type_config(
                MessageInfo(OWNER),
                PoolTypeConfig(template_id=12, pool_type=PoolType.STABLE, total_fee_bps=20_000),
            )

    def test_blacklisted_pool_types(self, registry):
        registry.update_pool_type_config(
            MessageInfo(OWNER),
            PoolTypeConfig(
                template_id=STABLE_CODE_ID, pool_type=PoolType.STABLE, total_fee_bps=5, rewards_eligible=False
            ),
        )
        assert registry.query_blacklisted_pool_types() == [PoolType.STABLE]

    def test_rewards_collector_requires_created_pool(self, registry):
        with pytest.raises(PoolNotRegistered):
            registry.register_rewards_collector(MessageInfo(OWNER), POOL, COLLECTOR)

    def test_rewards_collector_requires_owner(self, registry):
        register_pool(registry)
        with pytest.raises(Unauthorized):
            registry.register_rewards_collector(MessageInfo(ALICE), POOL, COLLECTOR)


class TestFeePolicy:
    """The collector is only reported while a controller is configured."""

    def test_without_controller(self, registry):
        register_pool(registry)
        registry.register_rewards_collector(MessageInfo(OWNER), POOL, COLLECTOR)

        policy = registry.fee_policy(PoolType.XYK, POOL)

        assert policy.rewards_collector_address is None
        assert policy.fee_address == FEE_ADDRESS
        assert str(policy.total_fee_rate) == "0.003"

    def test_with_controller(self):
        registry = make_registry(controller_address=CONTROLLER)
        register_pool(registry)
        registry.register_rewards_collector(MessageInfo(OWNER), POOL, COLLECTOR)

        policy = registry.fee_policy("xyk", POOL)

        assert policy.rewards_collector_address == COLLECTOR
        assert policy.controller_address == CONTROLLER
        assert policy.owner == OWNER

    def test_other_pool_has_no_collector(self):
        registry = make_registry(controller_address=CONTROLLER)
        register_pool(registry)
        registry.register_rewards_collector(MessageInfo(OWNER), POOL, COLLECTOR)
        assert registry.fee_policy(PoolType.XYK, "pool0002").rewards_collector_address is None

    def test_unconfigured_type(self):
        registry = make_registry(pool_configs=make_pool_type_configs()[:1])
        with pytest.raises(PoolTypeNotFound):
            registry.fee_policy(PoolType.STABLE, POOL)
