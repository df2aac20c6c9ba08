__all__ = [
    # Configuration
    "NodeSettings",
    "load_settings",
    "configure_logging",
    # Errors
    "FrontierTesterError",
    "NodeConnectionError",
    "RpcError",
    "RpcTimeoutError",
    "DeploymentError",
    "AbiError",
    "AssertionFailure",
    # Accounts
    "Account",
    # RPC
    "Receipt",
    "RpcClient",
    "encode_function_signature",
    "load_artifact",
    # Contracts
    "ContractFactory",
    "ContractHandle",
    "ContractFunction",
    # Context
    "NodeContext",
    "anon_context",
    "with_anon_context",
    # Scenarios
    "SCENARIOS",
    "ScenarioOutcome",
    "ScenarioResult",
    "allowance_scenario",
    "fallback_refund_scenario",
    "interface_linking_scenario",
    "run_scenarios",
]

from .accounts import Account
from .chain.abi import encode_function_signature, load_artifact
from .chain.rpc import Receipt, RpcClient
from .config import NodeSettings, load_settings
from .context import NodeContext, anon_context, with_anon_context
from .contract import ContractFactory, ContractFunction, ContractHandle
from .errors import (
    AbiError,
    AssertionFailure,
    DeploymentError,
    FrontierTesterError,
    NodeConnectionError,
    RpcError,
    RpcTimeoutError,
)
from .log import configure_logging
from .scenarios import (
    SCENARIOS,
    ScenarioOutcome,
    ScenarioResult,
    allowance_scenario,
    fallback_refund_scenario,
    interface_linking_scenario,
    run_scenarios,
)
