"""A two-asset pool: liquidity provisioning, withdrawal and swaps.

PoolInstance never moves funds. It reads balances and the LP supply from
the host (PoolQuerier), reads live fee / ownership policy from its registry
(RegistryClient), runs the curve for its pool type, and returns a Response
with the intents the host must execute.

Native assets are credited to the pool by the host before the pool is
entered, so their declared amounts are subtracted from the queried balance
to recover the pre-trade reserves. Contract tokens are pulled with a
TokenTransferFrom intent instead (liquidity) or arrive through the token
hook (swaps and LP withdrawals).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

import pydantic
import structlog

from amm_engine.assets import Asset, AssetInfo, AssetKind, Coin, check_asset_infos, validate_address
from amm_engine.codec import parse_instantiate_response
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.constants import (
    INSTANTIATE_NATIVE_LP_REPLY_ID,
    INSTANTIATE_TOKEN_LP_REPLY_ID,
    LP_TOKEN_DECIMALS,
    LP_TOKEN_SYMBOL,
    N_COINS,
    TOKEN_SYMBOL_MAX_LENGTH,
)
from amm_engine.curves.base import Curve, PoolType, ReverseOutcome, SwapOutcome, share_in_assets
from amm_engine.curves.constant_product import ConstantProductCurve
from amm_engine.curves.stableswap import AmpState, StableswapCurve
from amm_engine.errors import (
    AssetMismatch,
    Cw20DirectSwap,
    FailedToParseReply,
    InitParamsNotFound,
    InvalidAsset,
    InvalidAssetInfo,
    InvalidLiquidityToken,
    InvalidNumberOfAssets,
    InvalidParams,
    InvalidState,
    InvalidSwapParameters,
    NonSupported,
    Unauthorized,
)
from amm_engine.host import Env, MessageInfo, PoolQuerier, RegistryClient, Reply
from amm_engine.intents import (
    ContractExecute,
    ContractInstantiate,
    DeferredCommand,
    DenomBurn,
    DenomCreate,
    DenomMint,
    Intent,
    ReplyOn,
    Response,
    TokenBurn,
    TokenMint,
    TokenSend,
    transfer_from_intent,
    transfer_intent,
)
from amm_engine.math.decimal import Decimal256
from amm_engine.messages import (
    AccumUserEmissions,
    PairInfo,
    PoolConfigResponse,
    PoolInstantiateMsg,
    PoolResponse,
    StablePoolConfig,
    StablePoolParams,
    StablePoolUpdateParams,
    SwapHook,
    WithdrawLiquidityHook,
)
from amm_engine.pool.slippage import assert_max_spread
from amm_engine.pool.state import PoolState
from amm_engine.precision import PrecisionTable
from amm_engine.registry import FeePolicy
from amm_engine.safe_int import S

logger = structlog.get_logger()

LP_TOKEN_LABEL = "AMM LP Token"


def format_lp_token_name(asset_infos: Iterable[AssetInfo], querier: PoolQuerier) -> str:
    """LP unit name: first four characters of each denom / token symbol.

    >>> format_lp_token_name([AssetInfo.native("uusd"), AssetInfo.native("uluna")], querier)
    'UUSD-ULUN-LP'
    """
    short_symbols = []
    for info in asset_infos:
        symbol = info.value if info.is_native else querier.token_symbol(info.value)
        short_symbols.append(symbol[:TOKEN_SYMBOL_MAX_LENGTH])
    return f"{'-'.join(short_symbols)}-LP".upper()


def _parse_params(model: type[pydantic.BaseModel], params: Any) -> Any:
    if isinstance(params, model):
        return params
    try:
        if isinstance(params, (str, bytes)):
            return model.model_validate_json(params)
        return model.model_validate(params)
    except pydantic.ValidationError as err:
        raise InvalidParams(f"Invalid {model.__name__}: {err}") from err


class PoolInstance:
    """One pool, bound to its host querier and registry."""

    def __init__(
        self,
        state: PoolState,
        querier: PoolQuerier,
        registry: RegistryClient,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> None:
        self.state = state
        self.querier = querier
        self.registry = registry
        self.config = config

    # --- Lifecycle ---

    @classmethod
    def instantiate(
        cls,
        env: Env,
        msg: PoolInstantiateMsg | dict[str, Any],
        querier: PoolQuerier,
        registry: RegistryClient,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> tuple[PoolInstance, Response]:
        """Create a pool and request its LP unit from the host.

        Native LP units are a denom created under the pool's namespace
        (factory/{pool}/{name}); token LP units are a token contract the
        pool is the minter of, whose address arrives in confirm_lp_token().

        Raises:
            InvalidNumberOfAssets, DoublingAssets, InvalidAssetInfo: If the
                pair is malformed
            InitParamsNotFound: If a stableswap pool has no init params
            InvalidParams: If init params cannot be decoded
            IncorrectAmp: If the amp is zero or too large
            InvalidPrecision: If an asset reports more than 18 decimals
        """
        if not isinstance(msg, PoolInstantiateMsg):
            msg = _parse_params(PoolInstantiateMsg, msg)

        if len(msg.asset_infos) != N_COINS:
            raise InvalidNumberOfAssets(N_COINS)
        check_asset_infos(msg.asset_infos)

        amp = None
        if msg.pool_type is PoolType.STABLE:
            if msg.init_params is None:
                raise InitParamsNotFound("Stableswap pools require init params with an amp")
            params = _parse_params(StablePoolParams, msg.init_params)
            amp = AmpState.fixed(params.amp, env.block_time)

        precisions = PrecisionTable.build((info, querier.precision(info)) for info in msg.asset_infos)
        token_name = format_lp_token_name(msg.asset_infos, querier)

        if msg.token_code_id is not None:
            lp_kind = AssetKind.CONTRACT
            liquidity_token = None
            command = DeferredCommand(
                INSTANTIATE_TOKEN_LP_REPLY_ID,
                ContractInstantiate(
                    code_id=msg.token_code_id,
                    msg={
                        "name": token_name,
                        "symbol": LP_TOKEN_SYMBOL,
                        "decimals": LP_TOKEN_DECIMALS,
                        "initial_balances": [],
                        "mint": {"minter": env.contract_address, "cap": None},
                    },
                    label=LP_TOKEN_LABEL,
                ),
                ReplyOn.SUCCESS,
            )
        else:
            lp_kind = AssetKind.NATIVE
            liquidity_token = AssetInfo.native(f"factory/{env.contract_address}/{token_name}")
            command = DeferredCommand(
                INSTANTIATE_NATIVE_LP_REPLY_ID, DenomCreate(subdenom=token_name), ReplyOn.SUCCESS
            )

        state = PoolState(
            contract_address=env.contract_address,
            registry_address=msg.registry_addr,
            pool_type=msg.pool_type,
            asset_infos=list(msg.asset_infos),
            lp_kind=lp_kind,
            liquidity_token=liquidity_token,
            lp_token_name=token_name,
            precisions=precisions,
            amp=amp,
        )

        logger.debug(
            "pool_instantiated",
            pool=env.contract_address,
            pool_type=msg.pool_type.value,
            lp_kind=lp_kind.value,
            lp_token_name=token_name,
        )
        response = (
            Response()
            .add_intent(command)
            .add_attribute("action", "instantiate")
            .add_attribute("pool_type", msg.pool_type.value)
            .add_attribute("lp_token_name", token_name)
        )
        return cls(state, querier, registry, config), response

    @classmethod
    def from_json(
        cls,
        data: str | bytes,
        querier: PoolQuerier,
        registry: RegistryClient,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> PoolInstance:
        return cls(PoolState.model_validate_json(data), querier, registry, config)

    def to_json(self) -> str:
        return self.state.model_dump_json()

    def confirm_lp_token(self, reply: Reply) -> Response:
        """Record the LP unit once the host has created it.

        Raises:
            FailedToParseReply: If the reply is an error or its payload
                cannot be decoded
            InvalidState: If the reply id does not match the LP unit kind
        """
        if not reply.is_ok:
            raise FailedToParseReply(f"LP unit creation failed: {reply.error}")

        expected = (
            INSTANTIATE_NATIVE_LP_REPLY_ID
            if self.state.lp_kind is AssetKind.NATIVE
            else INSTANTIATE_TOKEN_LP_REPLY_ID
        )
        if reply.id != expected:
            raise InvalidState(
                f"Reply id {reply.id} does not match {self.state.lp_kind.value} LP unit (expected {expected})"
            )

        if self.state.lp_kind is AssetKind.CONTRACT:
            if reply.data is None:
                raise FailedToParseReply("Missing instantiate data for LP token")
            response = parse_instantiate_response(reply.data)
            try:
                address = validate_address(response.contract_address)
            except InvalidAssetInfo as err:
                raise FailedToParseReply(str(err)) from err
            self.state.liquidity_token = AssetInfo.contract(address)

        liquidity_token = self.state.require_liquidity_token()
        logger.debug("pool_lp_token_confirmed", pool=self.state.contract_address, lp_token=str(liquidity_token))
        return Response().add_attribute("liquidity_token_addr", liquidity_token.value)

    # --- Helpers ---

    @property
    def contract_address(self) -> str:
        return self.state.contract_address

    def _pools(self) -> list[Asset]:
        return [Asset(info, self.querier.balance(info, self.contract_address)) for info in self.state.asset_infos]

    def _total_share(self) -> int:
        return self.querier.total_supply(self.state.require_liquidity_token())

    def _curve(self, env: Env) -> Curve:
        if self.state.pool_type is PoolType.STABLE:
            amp = self.state.require_amp().current_amp(env.block_time)
            return StableswapCurve(amp, self.state.precisions, self.config)
        return ConstantProductCurve(self.config)

    def _fee_policy(self) -> FeePolicy:
        return self.registry.fee_policy(self.state.pool_type, self.contract_address)

    def _mint_intent(self, recipient: str, amount: int) -> Intent:
        lp = self.state.require_liquidity_token()
        if lp.is_native:
            return DenomMint(denom=lp.value, amount=amount, recipient=recipient)
        return TokenMint(token=lp.value, recipient=recipient, amount=amount)

    def _burn_intent(self, amount: int) -> Intent:
        lp = self.state.require_liquidity_token()
        if lp.is_native:
            return DenomBurn(denom=lp.value, amount=amount, burn_from=self.contract_address)
        return TokenBurn(token=lp.value, amount=amount)

    @staticmethod
    def _notify_controller(controller: str | None, address: str, previous_amount: int) -> list[Intent]:
        """Tell the rewards controller the balance an account held before this change."""
        if controller is None or previous_amount == 0:
            return []
        msg = AccumUserEmissions(address=address, previous_amount=previous_amount)
        return [ContractExecute(contract=controller, msg={"accum_user_emissions": msg.model_dump(mode="json")})]

    def _check_pool_assets(self, assets: Sequence[Asset]) -> None:
        if len(assets) != N_COINS:
            raise InvalidNumberOfAssets(N_COINS)
        check_asset_infos([a.info for a in assets])
        for asset in assets:
            if asset.info not in self.state.asset_infos:
                raise InvalidAsset(f"{asset.info} is not part of the pool")

    def _assert_coins_sent(self, info: MessageInfo, assets: Sequence[Asset]) -> None:
        """Attached native funds must match the declared native deposits exactly."""
        declared = {a.info.value: a.amount for a in assets if a.is_native}
        pool_denoms = {i.value for i in self.state.asset_infos if i.is_native}
        for coin in info.funds:
            if coin.denom not in pool_denoms or coin.denom not in declared:
                raise AssetMismatch(f"Supplied coins contain {coin.denom} that is not in the input asset vector")
            if coin.amount != declared[coin.denom]:
                raise AssetMismatch(
                    f"Native token balance mismatch for {coin.denom}: declared {declared[coin.denom]}, sent {coin.amount}"
                )
        for denom, amount in declared.items():
            if amount and info.sent_amount(denom) != amount:
                raise AssetMismatch(f"Declared {amount}{denom} but the coins were not attached")

    def _select_pools(
        self, offer_info: AssetInfo, ask_info: AssetInfo | None, pools: Sequence[Asset]
    ) -> tuple[Asset, Asset]:
        if offer_info == pools[0].info:
            offer_pool, ask_pool = pools[0], pools[1]
        elif offer_info == pools[1].info:
            offer_pool, ask_pool = pools[1], pools[0]
        else:
            raise AssetMismatch(f"{offer_info} is not part of the pool")
        if ask_info is not None and ask_info != ask_pool.info:
            raise AssetMismatch(f"{ask_info} cannot be asked for {offer_info}")
        return offer_pool, ask_pool

    def _select_reverse_pools(self, ask_info: AssetInfo, pools: Sequence[Asset]) -> tuple[Asset, Asset]:
        if ask_info == pools[0].info:
            return pools[1], pools[0]
        if ask_info == pools[1].info:
            return pools[0], pools[1]
        raise AssetMismatch(f"{ask_info} is not part of the pool")

    # --- Liquidity ---

    def provide_liquidity(
        self,
        info: MessageInfo,
        env: Env,
        assets: Sequence[Asset],
        slippage_tolerance: Decimal | None = None,
        receiver: str | None = None,
    ) -> Response:
        """Deposit both pool assets and mint LP units to `receiver` (default: sender).

        Raises:
            InvalidNumberOfAssets, DoublingAssets, InvalidAsset: If the
                deposit does not name exactly the pool's assets
            AssetMismatch: If attached native funds differ from the deposit
            InvalidZeroAmount, InvalidProvideLPsWithSingleToken: If a
                required deposit is zero
            InsufficientInitialLiquidity: If the first deposit is too small
            LiquidityAmountTooSmall: If the deposit would mint nothing
            MaxSlippageAssertion: If the deposit ratio strays from the pool's
        """
        self._check_pool_assets(assets)
        self._assert_coins_sent(info, assets)
        recipient = validate_address(receiver) if receiver else info.sender

        pools = self._pools()
        deposits = [next(a for a in assets if a.info == pool.info) for pool in pools]

        intents: list[Intent] = []
        reserves = []
        for deposit, pool in zip(deposits, pools):
            if deposit.is_native:
                reserves.append(Asset(pool.info, (S(pool.amount) - deposit.amount).to_uint128()))
            else:
                reserves.append(pool)
                if deposit.amount:
                    intents.append(transfer_from_intent(deposit, info.sender, self.contract_address))

        total_share = self._total_share()
        share = self._curve(env).provision_share(deposits, reserves, total_share, slippage_tolerance)
        policy = self._fee_policy()

        if total_share == 0:
            intents.append(self._mint_intent(self.contract_address, self.config.minimum_liquidity_amount))
        intents.append(self._mint_intent(recipient, share))

        previous = self.state.providers.credit(recipient, share)
        intents.extend(self._notify_controller(policy.controller_address, recipient, previous))

        logger.debug(
            "pool_liquidity_provided",
            pool=self.contract_address,
            receiver=recipient,
            deposits=[d.amount for d in deposits],
            share=share,
        )
        return (
            Response()
            .add_intents(intents)
            .add_attributes(
                [
                    ("action", "provide_liquidity"),
                    ("sender", info.sender),
                    ("receiver", recipient),
                    ("assets", ", ".join(str(a) for a in assets)),
                    ("share", share),
                ]
            )
        )

    def withdraw_liquidity(self, info: MessageInfo, env: Env) -> Response:
        """Burn native LP units attached to the call and refund the pool assets.

        Raises:
            InvalidLiquidityToken: If the call does not carry exactly one coin
                of the pool's LP denom, or the pool issues token LP units
        """
        lp = self.state.require_liquidity_token()
        if not lp.is_native:
            raise InvalidLiquidityToken("LP units of this pool are withdrawn through the token hook")
        if len(info.funds) != 1 or info.funds[0].denom != lp.value:
            raise InvalidLiquidityToken(f"Expected exactly one coin of {lp.value}")
        return self._withdraw(info.sender, info.funds[0].amount, env)

    def _withdraw(self, owner: str, amount: int, env: Env) -> Response:
        pools = self._pools()
        total_share = self._total_share()
        refunds = self._curve(env).withdraw_share(pools, amount, total_share)
        policy = self._fee_policy()

        intents: list[Intent] = [transfer_intent(r, owner) for r in refunds if r.amount]
        intents.append(self._burn_intent(amount))

        previous = self.state.providers.debit(owner, amount)
        intents.extend(self._notify_controller(policy.controller_address, owner, previous))

        logger.debug(
            "pool_liquidity_withdrawn",
            pool=self.contract_address,
            owner=owner,
            amount=amount,
            refunds=[r.amount for r in refunds],
        )
        return (
            Response()
            .add_intents(intents)
            .add_attributes(
                [
                    ("action", "withdraw_liquidity"),
                    ("sender", owner),
                    ("withdrawn_share", amount),
                    ("refund_assets", ", ".join(str(r) for r in refunds)),
                ]
            )
        )

    # --- Token hook ---

    def receive_token(
        self,
        info: MessageInfo,
        env: Env,
        sender: str,
        amount: int,
        msg: SwapHook | WithdrawLiquidityHook | dict[str, Any],
    ) -> Response:
        """Entry point for tokens sent to the pool with a hook message.

        `info.sender` is the token contract, `sender` the account that sent
        the tokens. A dict message is decoded from {"swap": {...}} or
        {"withdraw_liquidity": {}}.

        Raises:
            Unauthorized: If the token is not one of the pool's assets (swap)
                or not the pool's LP token (withdrawal)
            NonSupported: If LP units are withdrawn through the hook of a
                pool that issues native LP units
        """
        if isinstance(msg, dict):
            if "swap" in msg:
                msg = _parse_params(SwapHook, msg["swap"] or {})
            elif "withdraw_liquidity" in msg:
                msg = _parse_params(WithdrawLiquidityHook, msg["withdraw_liquidity"] or {})
            else:
                raise InvalidParams(f"Unknown token hook message: {sorted(msg)}")

        if isinstance(msg, SwapHook):
            token = AssetInfo.contract(info.sender)
            if token not in self.state.asset_infos:
                raise Unauthorized(f"Token {info.sender} is not part of the pool")
            to = validate_address(msg.to) if msg.to else None
            return self._swap(
                sender, env, Asset(token, amount), msg.belief_price, msg.max_spread, msg.ask_asset_info, to
            )

        lp = self.state.require_liquidity_token()
        if lp.is_native:
            raise NonSupported("This pool issues native LP units")
        if info.sender != lp.value:
            raise Unauthorized(f"{info.sender} is not the pool's LP token")
        return self._withdraw(sender, amount, env)

    # --- Swap ---

    def swap(
        self,
        info: MessageInfo,
        env: Env,
        offer_asset: Asset,
        belief_price: Decimal | None = None,
        max_spread: Decimal | None = None,
        ask_asset_info: AssetInfo | None = None,
        to: str | None = None,
    ) -> Response:
        """Swap a native offer attached to the call.

        Raises:
            Cw20DirectSwap: If the offer is a contract token
            AssetMismatch: If the attached coins differ from the offer or the
                offer / ask assets are not the pool's
            InvalidSwapParameters: If a pool side or the offer is zero
            MaxSpreadAssertion: If the spread exceeds max_spread
        """
        if not offer_asset.is_native:
            raise Cw20DirectSwap("Contract tokens must be swapped through the token hook")
        if info.sent_amount(offer_asset.info.value) != offer_asset.amount:
            raise AssetMismatch(
                f"Native token balance mismatch between the argument and the transferred {offer_asset.info}"
            )
        recipient = validate_address(to) if to else None
        return self._swap(info.sender, env, offer_asset, belief_price, max_spread, ask_asset_info, recipient)

    def _swap(
        self,
        sender: str,
        env: Env,
        offer_asset: Asset,
        belief_price: Decimal | None,
        max_spread: Decimal | None,
        ask_asset_info: AssetInfo | None,
        to: str | None,
    ) -> Response:
        pools = [
            Asset(p.info, (S(p.amount) - offer_asset.amount).to_uint128()) if p.info == offer_asset.info else p
            for p in self._pools()
        ]
        offer_pool, ask_pool = self._select_pools(offer_asset.info, ask_asset_info, pools)

        policy = self._fee_policy()
        fee_rate = Decimal256.from_decimal(policy.total_fee_rate)
        outcome = self._curve(env).compute_swap(offer_pool, ask_pool, offer_asset.amount, fee_rate)

        assert_max_spread(
            belief_price,
            max_spread,
            offer_asset.amount,
            outcome.return_amount + outcome.commission_amount,
            outcome.spread_amount,
            self.config,
        )

        receiver = to or sender
        intents: list[Intent] = []
        if outcome.return_amount:
            intents.append(transfer_intent(Asset(ask_pool.info, outcome.return_amount), receiver))

        collector_fee = 0
        if outcome.commission_amount:
            commission = Asset(ask_pool.info, outcome.commission_amount)
            if policy.rewards_collector_address is not None:
                collector_fee = outcome.commission_amount
                intents.append(self._deposit_fees_intent(commission, policy.rewards_collector_address))
            elif policy.fee_address is not None:
                intents.append(transfer_intent(commission, policy.fee_address))

        logger.debug(
            "pool_swap",
            pool=self.contract_address,
            offer_asset=str(offer_asset.info),
            ask_asset=str(ask_pool.info),
            offer_amount=offer_asset.amount,
            return_amount=outcome.return_amount,
            spread_amount=outcome.spread_amount,
            commission_amount=outcome.commission_amount,
        )
        return (
            Response()
            .add_intents(intents)
            .add_attributes(
                [
                    ("action", "swap"),
                    ("sender", sender),
                    ("receiver", receiver),
                    ("offer_asset", offer_asset.info),
                    ("ask_asset", ask_pool.info),
                    ("offer_amount", offer_asset.amount),
                    ("return_amount", outcome.return_amount),
                    ("spread_amount", outcome.spread_amount),
                    ("commission_amount", outcome.commission_amount),
                    ("collector_fee_amount", collector_fee),
                ]
            )
        )

    @staticmethod
    def _deposit_fees_intent(commission: Asset, collector: str) -> Intent:
        if commission.is_native:
            return ContractExecute(
                contract=collector,
                msg={"deposit_fees": {}},
                funds=(Coin(commission.info.value, commission.amount),),
            )
        return TokenSend(
            token=commission.info.value,
            contract=collector,
            amount=commission.amount,
            msg={"deposit_fees": {}},
        )

    # --- Administration ---

    def update_config(self, info: MessageInfo, env: Env, params: Any = None) -> Response:
        """Owner-only parameter update.

        Constant product pools have no parameters and accept any params.
        Stableswap pools accept {"start_changing_amp": {"next_amp": ...,
        "next_amp_time": ...}} or {"stop_changing_amp": {}}.

        Raises:
            Unauthorized: If the sender is not the registry owner
            InvalidParams: If stableswap params cannot be decoded
        """
        owner = self.registry.query_config().owner
        if info.sender != owner:
            raise Unauthorized(f"{info.sender} is not the owner")

        if self.state.pool_type is PoolType.STABLE:
            update = _parse_params(StablePoolUpdateParams, params)
            amp = self.state.require_amp()
            if update.start_changing_amp is not None:
                self.state.amp = amp.start_ramp(
                    update.start_changing_amp.next_amp,
                    update.start_changing_amp.next_amp_time,
                    env.block_time,
                )
            else:
                self.state.amp = amp.stop_ramp(env.block_time)
            logger.debug("pool_config_updated", pool=self.contract_address, amp=self.state.amp.model_dump())

        return Response().add_attribute("action", "update_config")

    # --- Queries ---

    def query_pair(self) -> PairInfo:
        return PairInfo(
            asset_infos=self.state.asset_infos,
            contract_addr=self.contract_address,
            liquidity_token=self.state.liquidity_token,
            pool_type=self.state.pool_type,
        )

    def query_pool(self) -> PoolResponse:
        return PoolResponse(assets=self._pools(), total_share=self._total_share())

    def query_share(self, amount: int) -> list[Asset]:
        return share_in_assets(self._pools(), amount, self._total_share())

    def simulate_swap(self, env: Env, offer_asset: Asset, ask_asset_info: AssetInfo | None = None) -> SwapOutcome:
        """Outcome of swapping `offer_asset` against the current reserves.

        Stableswap pools report a zero outcome instead of failing when a
        pool side or the offer is zero.
        """
        offer_pool, ask_pool = self._select_pools(offer_asset.info, ask_asset_info, self._pools())
        fee_rate = Decimal256.from_decimal(self._fee_policy().total_fee_rate)
        try:
            return self._curve(env).compute_swap(offer_pool, ask_pool, offer_asset.amount, fee_rate)
        except InvalidSwapParameters:
            if self.state.pool_type is PoolType.STABLE:
                return SwapOutcome.zero()
            raise

    def simulate_reverse_swap(self, env: Env, ask_asset: Asset) -> ReverseOutcome:
        """Offer needed to receive `ask_asset` against the current reserves."""
        offer_pool, ask_pool = self._select_reverse_pools(ask_asset.info, self._pools())
        fee_rate = Decimal256.from_decimal(self._fee_policy().total_fee_rate)
        try:
            return self._curve(env).compute_offer_amount(offer_pool, ask_pool, ask_asset.amount, fee_rate)
        except InvalidSwapParameters:
            if self.state.pool_type is PoolType.STABLE:
                return ReverseOutcome.zero()
            raise

    def query_config(self, env: Env) -> PoolConfigResponse:
        params = None
        if self.state.pool_type is PoolType.STABLE:
            params = StablePoolConfig(amp=self.state.require_amp().amp_decimal(env.block_time))
        return PoolConfigResponse(
            owner=self.registry.query_config().owner,
            registry_addr=self.state.registry_address,
            params=params,
        )

    def query_compute_d(self, env: Env) -> int:
        """Current invariant D at the pool's greatest precision.

        Raises:
            NonSupported: For constant product pools
        """
        if self.state.pool_type is not PoolType.STABLE:
            raise NonSupported("D is only defined for stableswap pools")
        amp = self.state.require_amp().current_amp(env.block_time)
        curve = StableswapCurve(amp, self.state.precisions, self.config)
        return curve.compute_d(self._pools()).to_uint_with_precision(self.state.precisions.greatest_precision)

    def lp_received(self, address: str) -> int:
        """LP units the pool has recorded for `address`."""
        return self.state.providers.get(address)
