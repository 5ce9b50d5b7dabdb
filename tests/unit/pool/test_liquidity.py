"""Tests for providing and withdrawing liquidity."""

from decimal import Decimal

import pytest

from amm_engine.assets import Asset, AssetInfo, Coin
from amm_engine.errors import (
    AssetMismatch,
    DoublingAssets,
    InsufficientInitialLiquidity,
    InvalidAsset,
    InvalidLiquidityToken,
    InvalidNumberOfAssets,
    InvalidZeroAmount,
    MaxSlippageAssertion,
    NonSupported,
    Unauthorized,
)
from amm_engine.host import Env, MessageInfo
from amm_engine.intents import ContractExecute, DenomBurn, DenomMint, TokenBurn, TokenMint, TokenTransferFrom
from tests.helpers import (
    ALICE,
    BOB,
    CONTROLLER,
    LP_TOKEN,
    POOL,
    TOKEN_A,
    UATOM,
    ULUNA,
    UUSD,
    make_pool,
    make_registry,
    provide,
)


class TestProvideLiquidity:
    """Tests for PoolInstance.provide_liquidity on a constant product pool."""

    def test_first_deposit(self, ledger, xyk_pool):
        """sqrt(1e6 * 1e6) - 1000 to the provider, 1000 locked in the pool."""
        response = provide(ledger, xyk_pool, ALICE, {UUSD: 1_000_000, ULUNA: 1_000_000})
        lp = xyk_pool.state.liquidity_token

        assert ledger.balance(lp, ALICE) == 999_000
        assert ledger.balance(lp, POOL) == 1_000
        assert ledger.total_supply(lp) == 1_000_000
        assert xyk_pool.lp_received(ALICE) == 999_000
        assert response.attribute("action") == "provide_liquidity"
        assert response.attribute("share") == "999000"
        assert response.attribute("assets") == "1000000uusd, 1000000uluna"

    def test_first_deposit_mints_minimum_first(self, ledger, xyk_pool):
        response = provide(ledger, xyk_pool, ALICE, {UUSD: 1_000_000, ULUNA: 1_000_000})
        mints = [i for i in response.intents if isinstance(i, DenomMint)]
        assert [(m.recipient, m.amount) for m in mints] == [(POOL, 1_000), (ALICE, 999_000)]

    def test_first_deposit_too_small(self, ledger, xyk_pool):
        with pytest.raises(InsufficientInitialLiquidity):
            provide(ledger, xyk_pool, ALICE, {UUSD: 1_000, ULUNA: 1_000})

    def test_proportional_second_deposit(self, ledger, funded_xyk_pool):
        response = provide(ledger, funded_xyk_pool, BOB, {UUSD: 1_000, ULUNA: 1_000})
        assert ledger.balance(funded_xyk_pool.state.liquidity_token, BOB) == 1_000
        assert response.attribute("share") == "1000"

    def test_asset_order_does_not_matter(self, ledger, funded_xyk_pool):
        provide(ledger, funded_xyk_pool, BOB, {ULUNA: 2_000, UUSD: 2_000})
        assert funded_xyk_pool.lp_received(BOB) == 2_000

    def test_receiver(self, ledger, funded_xyk_pool):
        provide(ledger, funded_xyk_pool, ALICE, {UUSD: 1_000, ULUNA: 1_000}, receiver=BOB)
        assert ledger.balance(funded_xyk_pool.state.liquidity_token, BOB) == 1_000
        assert funded_xyk_pool.lp_received(BOB) == 1_000

    def test_skewed_deposit_leaves_state_untouched(self, ledger, funded_xyk_pool):
        before = funded_xyk_pool.state.model_copy(deep=True)
        with pytest.raises(MaxSlippageAssertion):
            provide(ledger, funded_xyk_pool, BOB, {UUSD: 1_000, ULUNA: 2_000})
        assert funded_xyk_pool.state == before

    def test_skewed_deposit_with_tolerance(self, ledger, funded_xyk_pool):
        provide(
            ledger, funded_xyk_pool, BOB, {UUSD: 1_000, ULUNA: 1_010}, slippage_tolerance=Decimal("0.02")
        )
        assert funded_xyk_pool.lp_received(BOB) == 1_000

    def test_zero_deposit(self, ledger, funded_xyk_pool):
        with pytest.raises(InvalidZeroAmount):
            provide(ledger, funded_xyk_pool, BOB, {UUSD: 1_000, ULUNA: 0})

    def test_foreign_asset(self, ledger, xyk_pool):
        with pytest.raises(InvalidAsset):
            provide(ledger, xyk_pool, ALICE, {UUSD: 1_000_000, UATOM: 1_000_000})

    def test_number_of_assets(self, ledger, xyk_pool, pool_env):
        with pytest.raises(InvalidNumberOfAssets):
            xyk_pool.provide_liquidity(MessageInfo(ALICE), pool_env, [Asset(UUSD, 0)])

    def test_doubling_assets(self, ledger, xyk_pool, pool_env):
        with pytest.raises(DoublingAssets):
            xyk_pool.provide_liquidity(MessageInfo(ALICE), pool_env, [Asset(UUSD, 0), Asset(UUSD, 0)])


class TestAttachedCoins:
    """Attached native funds must match the declared deposit."""

    def deposit(self):
        return [Asset(UUSD, 1_000_000), Asset(ULUNA, 1_000_000)]

    def test_amount_mismatch(self, ledger, xyk_pool, pool_env):
        ledger.fund(ALICE, UUSD, 1_000_000)
        ledger.fund(ALICE, ULUNA, 1_000_000)
        info = ledger.attach(ALICE, POOL, Coin("uusd", 999_999), Coin("uluna", 1_000_000))
        with pytest.raises(AssetMismatch):
            xyk_pool.provide_liquidity(info, pool_env, self.deposit())

    def test_missing_coins(self, xyk_pool, pool_env):
        with pytest.raises(AssetMismatch):
            xyk_pool.provide_liquidity(MessageInfo(ALICE), pool_env, self.deposit())

    def test_unexpected_coin(self, xyk_pool, pool_env):
        info = MessageInfo(
            ALICE, (Coin("uusd", 1_000_000), Coin("uluna", 1_000_000), Coin("uatom", 1))
        )
        with pytest.raises(AssetMismatch):
            xyk_pool.provide_liquidity(info, pool_env, self.deposit())


class TestWithdrawLiquidity:
    """Tests for withdrawing native LP units."""

    def test_partial_withdrawal(self, ledger, funded_xyk_pool, pool_env):
        lp = funded_xyk_pool.state.liquidity_token
        info = ledger.attach(ALICE, POOL, Coin(lp.value, 499_500))

        response = ledger.execute(POOL, funded_xyk_pool.withdraw_liquidity(info, pool_env))

        assert ledger.balance(UUSD, ALICE) == 499_500
        assert ledger.balance(ULUNA, ALICE) == 499_500
        assert ledger.total_supply(lp) == 500_500
        assert funded_xyk_pool.lp_received(ALICE) == 499_500
        assert response.attribute("withdrawn_share") == "499500"
        assert response.attribute("refund_assets") == "499500uusd, 499500uluna"

    def test_burns_from_pool(self, ledger, funded_xyk_pool, pool_env):
        lp = funded_xyk_pool.state.liquidity_token
        info = ledger.attach(ALICE, POOL, Coin(lp.value, 1_000))
        response = funded_xyk_pool.withdraw_liquidity(info, pool_env)
        assert response.intents[-1] == DenomBurn(denom=lp.value, amount=1_000, burn_from=POOL)

    @pytest.mark.parametrize(
        "funds",
        [
            (),
            (Coin("uusd", 10),),
            (Coin("factory/pool0001/UUSD-ULUN-LP", 10), Coin("uusd", 10)),
        ],
    )
    def test_wrong_coins(self, funded_xyk_pool, pool_env, funds):
        with pytest.raises(InvalidLiquidityToken):
            funded_xyk_pool.withdraw_liquidity(MessageInfo(ALICE, funds), pool_env)

    @pytest.mark.parametrize("pool_fixture", ["xyk_pool", "stable_pool"])
    def test_supply_tracks_deposits_and_withdrawals(self, request, ledger, pool_env, pool_fixture):
        """Supply never shrinks on a deposit and never grows on a withdrawal."""
        pool = request.getfixturevalue(pool_fixture)
        lp = pool.state.require_liquidity_token()
        supply = [0]

        for sender, amount in [(ALICE, 1_000_000), (BOB, 1_000), (ALICE, 30), (BOB, 250_000)]:
            provide(ledger, pool, sender, {UUSD: amount, ULUNA: amount})
            supply.append(ledger.total_supply(lp))
            assert supply[-1] >= supply[-2]

        for sender in [BOB, ALICE, BOB, ALICE]:
            share = ledger.balance(lp, sender) // 2
            info = ledger.attach(sender, POOL, Coin(lp.value, share))
            ledger.execute(POOL, pool.withdraw_liquidity(info, pool_env))
            supply.append(ledger.total_supply(lp))
            assert supply[-1] <= supply[-2]

        assert supply[-1] == pool.query_pool().total_share

    def test_hook_not_supported_for_native_lp(self, funded_xyk_pool, pool_env):
        with pytest.raises(NonSupported):
            funded_xyk_pool.receive_token(
                MessageInfo(LP_TOKEN), pool_env, ALICE, 10, {"withdraw_liquidity": {}}
            )


class TestTokenLpUnits:
    """Pools that issue their LP unit as a token contract."""

    @pytest.fixture
    def token_lp_pool(self, ledger, registry):
        pool = make_pool(ledger, registry, token_lp=True)
        provide(ledger, pool, ALICE, {UUSD: 1_000_000, ULUNA: 1_000_000})
        return pool

    def test_provide_mints_tokens(self, ledger, token_lp_pool):
        lp = AssetInfo.contract(LP_TOKEN)
        assert ledger.balance(lp, ALICE) == 999_000
        assert len(ledger.executed_of(TokenMint)) == 2

    def test_withdraw_through_hook(self, ledger, token_lp_pool, pool_env):
        lp = AssetInfo.contract(LP_TOKEN)
        info = ledger.send_token(lp, ALICE, POOL, 499_500)

        ledger.execute(
            POOL, token_lp_pool.receive_token(info, pool_env, ALICE, 499_500, {"withdraw_liquidity": {}})
        )

        assert ledger.balance(UUSD, ALICE) == 499_500
        assert ledger.balance(lp, POOL) == 1_000
        assert ledger.executed_of(TokenBurn) == [TokenBurn(token=LP_TOKEN, amount=499_500)]

    def test_hook_from_other_token(self, token_lp_pool, pool_env):
        with pytest.raises(Unauthorized):
            token_lp_pool.receive_token(
                MessageInfo(TOKEN_A.value), pool_env, ALICE, 10, {"withdraw_liquidity": {}}
            )

    def test_native_withdrawal_rejected(self, token_lp_pool, pool_env):
        with pytest.raises(InvalidLiquidityToken):
            token_lp_pool.withdraw_liquidity(MessageInfo(ALICE, (Coin("uusd", 1),)), pool_env)


class TestTokenDeposits:
    """Contract-token deposits are pulled with TransferFrom."""

    def test_transfer_from_intent(self, ledger, registry):
        ledger.symbols[TOKEN_A.value] = "tka"
        pool = make_pool(ledger, registry, asset_infos=(TOKEN_A, UUSD))

        response = provide(ledger, pool, ALICE, {TOKEN_A: 1_000_000, UUSD: 1_000_000})

        assert TokenTransferFrom(token=TOKEN_A.value, owner=ALICE, recipient=POOL, amount=1_000_000) in response.intents
        assert ledger.balance(TOKEN_A, POOL) == 1_000_000
        assert pool.lp_received(ALICE) == 999_000


class TestControllerNotifications:
    """The rewards controller hears about every LP balance change."""

    @pytest.fixture
    def pool(self, ledger):
        registry = make_registry(controller_address=CONTROLLER)
        pool = make_pool(ledger, registry)
        provide(ledger, pool, ALICE, {UUSD: 1_000_000, ULUNA: 1_000_000})
        return pool

    def test_no_notification_for_new_provider(self, ledger, pool):
        assert ledger.executed_of(ContractExecute) == []

    def test_previous_amount_on_second_deposit(self, ledger, pool):
        response = provide(ledger, pool, ALICE, {UUSD: 1_000, ULUNA: 1_000})
        assert response.intents[-1] == ContractExecute(
            contract=CONTROLLER,
            msg={"accum_user_emissions": {"address": ALICE, "previous_amount": 999_000}},
        )

    def test_previous_amount_on_withdrawal(self, ledger, pool):
        lp = pool.state.liquidity_token
        info = ledger.attach(ALICE, POOL, Coin(lp.value, 1_000))
        response = pool.withdraw_liquidity(info, Env(POOL))
        assert response.intents[-1].msg["accum_user_emissions"]["previous_amount"] == 999_000
        assert pool.lp_received(ALICE) == 998_000
