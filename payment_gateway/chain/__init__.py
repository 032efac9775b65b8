from .oracle import (
    ERC20_ABI,
    BalanceOracle,
    ContractCallError,
    OracleError,
    TransportError,
    Web3BalanceOracle,
    connect_rpc,
)

__all__ = [
    "ERC20_ABI",
    "BalanceOracle",
    "ContractCallError",
    "OracleError",
    "TransportError",
    "Web3BalanceOracle",
    "connect_rpc",
]
