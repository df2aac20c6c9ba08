"""
End-to-end scenarios run against the node.

Each scenario deploys its contracts through a NodeContext, performs one or
two operations and checks an exact post-condition, raising
AssertionFailure when it does not hold.

Scenarios:
  allowance          - ERC20 approve() then allowance() returns the amount
  fallback_refund    - value sent to an unknown selector comes back, net of gas
  interface_linking  - a user contract delegates to a linked implementation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

import httpx
import structlog

from .chain.abi import constructor_input_types, encode_function_signature
from .chain.tx import build_raw_call_tx
from .config import NodeSettings, load_settings
from .context import NodeContext, anon_context
from .errors import AssertionFailure, RpcError
from .log import configure_logging
from .utils import to_wei

logger = structlog.get_logger(__name__)

DEFAULT_SPENDER = "0xc0ffee254729296a45a3885639AC7E10F9d54979"
DEFAULT_AMOUNT = to_wei(10, "ether")
UNDEFINED_METHOD = "myMethod()"
TOKEN_METADATA = ("Frontier Test Token", "FTT")


@dataclass(frozen=True)
class ScenarioResult:
    name: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScenarioOutcome:
    """Result of one scenario run by run_scenarios."""

    name: str
    passed: bool
    result: Optional[ScenarioResult] = None
    error: Optional[BaseException] = None

    @property
    def reason(self) -> str:
        if self.passed:
            return "passed"
        return f"{type(self.error).__name__}: {self.error}"


def allowance_scenario(
    context: NodeContext,
    spender: str = DEFAULT_SPENDER,
    amount: int = DEFAULT_AMOUNT,
    contract_name: str = "ERC20",
    constructor_args: Optional[Sequence[Any]] = None,
) -> ScenarioResult:
    """Approve ``amount`` for ``spender`` and read it back through allowance()."""
    owner = context.account
    factory = context.load_contract(contract_name)
    if constructor_args is None:
        # OpenZeppelin >= 3 takes (name, symbol); older builds take nothing
        takes_metadata = constructor_input_types(factory.abi) == ["string", "string"]
        constructor_args = TOKEN_METADATA if takes_metadata else ()
    token = factory.deploy(*constructor_args, sender=owner)

    token.approve.transact(spender, amount, sender=owner)
    allowance = token.allowance.call(owner.address, spender, sender=owner)

    if allowance != amount:
        raise AssertionFailure("allowance() does not match the approved amount", amount, allowance)

    return ScenarioResult(
        "allowance",
        {"token": token.address, "owner": owner.address, "spender": spender, "allowance": allowance},
    )


def fallback_refund_scenario(
    context: NodeContext,
    value: int = DEFAULT_AMOUNT,
    gas: int = 200_000,
    gas_price: int = 1,
    method_signature: str = UNDEFINED_METHOD,
    contract_name: str = "FallbackContract",
) -> ScenarioResult:
    """
    Send ``value`` to a selector the contract does not define.

    The fallback handler forwards msg.value back to the sender, so the
    sender's balance must drop by exactly gas_used * gas price.
    """
    client = context.client
    sender = context.account
    contract = context.load_contract(contract_name).deploy(sender=sender)

    balance_before = client.get_balance(sender.address)
    tx = build_raw_call_tx(
        contract.address,
        encode_function_signature(method_signature),
        value=value,
        gas=gas,
        gas_price=gas_price,
    )
    receipt = client.send_transaction(tx, sender)
    if not receipt.succeeded:
        raise RpcError(
            f"Call to {method_signature} on {contract_name} reverted",
            method=method_signature,
            params=[value],
            tx_hash=receipt.tx_hash,
        )
    balance_after = client.get_balance(sender.address)

    price_paid = receipt.effective_gas_price if receipt.effective_gas_price is not None else gas_price
    expected = receipt.gas_used * price_paid
    balance_diff = balance_before - balance_after
    if balance_diff != expected:
        raise AssertionFailure(
            "Balance change is not exactly the gas cost", expected, balance_diff
        )

    return ScenarioResult(
        "fallback_refund",
        {
            "contract": contract.address,
            "value": value,
            "gas_used": receipt.gas_used,
            "gas_price": price_paid,
            "balance_diff": balance_diff,
        },
    )


def interface_linking_scenario(
    context: NodeContext,
    impl_name: str = "ContractImpl",
    user_name: str = "IContractUser",
) -> ScenarioResult:
    """Link an implementation into a user contract and call through it."""
    sender = context.account

    logger.info("deploying_implementation", contract=impl_name)
    impl = context.load_contract(impl_name).deploy(sender=sender)

    logger.info("deploying_interface_user", contract=user_name)
    user = context.load_contract(user_name).deploy(sender=sender)

    logger.info("linking_contracts", user=user.address, implementation=impl.address)
    user.linkContract.transact(impl.address, sender=sender)

    logger.info("calling_linked_contract", user=user.address)
    result = user.doTheThing.call(sender=sender)
    if result is not True:
        raise AssertionFailure("Delegated doTheThing() result", True, result)

    return ScenarioResult(
        "interface_linking",
        {"implementation": impl.address, "user": user.address, "result": result},
    )


SCENARIOS: dict[str, Callable[[NodeContext], ScenarioResult]] = {
    "allowance": allowance_scenario,
    "fallback_refund": fallback_refund_scenario,
    "interface_linking": interface_linking_scenario,
}


def run_scenarios(
    settings: Optional[NodeSettings] = None,
    names: Optional[Sequence[str]] = None,
    *,
    fresh_account: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
    configure_logs: bool = False,
) -> list[ScenarioOutcome]:
    """
    Run scenarios one after another, each in its own context.

    A failing scenario (unreachable node, timeout, RPC rejection, failed
    deployment or assertion) is recorded and the next one still runs.

    Args:
        settings: Node settings (default: load_settings())
        names: Scenario names to run (default: all, in definition order)
        fresh_account: Give each scenario its own freshly funded account
        transport: Custom httpx transport (used for offline testing)
        configure_logs: Set up logging from settings.log_level and
            settings.log_json before running

    Returns:
        One ScenarioOutcome per scenario
    """
    settings = settings or load_settings()
    if configure_logs:
        configure_logging(json_output=settings.log_json, level=settings.log_level)
    selected = list(names) if names is not None else list(SCENARIOS)
    unknown = [n for n in selected if n not in SCENARIOS]
    if unknown:
        raise ValueError(f"Unknown scenarios: {', '.join(unknown)}")

    outcomes: list[ScenarioOutcome] = []
    for name in selected:
        log = logger.bind(scenario=name)
        log.info("scenario_started")
        try:
            with anon_context(settings, fresh_account=fresh_account, transport=transport) as context:
                result = SCENARIOS[name](context)
        # OSError covers ConnectionError, TimeoutError and missing artifact files
        except (AssertionError, RuntimeError, ValueError, OSError) as exc:
            log.error("scenario_failed", error=str(exc), error_type=type(exc).__name__)
            outcomes.append(ScenarioOutcome(name, passed=False, error=exc))
            continue
        log.info("scenario_passed", **result.details)
        outcomes.append(ScenarioOutcome(name, passed=True, result=result))
    return outcomes
