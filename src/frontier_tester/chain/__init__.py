"""
Chain interaction layer.

Provides the JSON-RPC client, ABI / artifact handling, and transaction
builders used to talk to the node under test.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
