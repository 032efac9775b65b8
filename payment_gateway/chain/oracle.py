from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import requests
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, InvalidAddress

ERC20_ABI = [
    {"inputs": [{"name": "account", "type": "address"}],
     "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}],
     "stateMutability": "view", "type": "function"},
]


class OracleError(Exception):
    """Balance lookup failed; the caller should treat the invoice as unsettled."""


class TransportError(OracleError):
    pass


class ContractCallError(OracleError):
    pass


class BalanceOracle(Protocol):
    async def query(self, address: str, token_contract: str | None = None) -> int: ...


def connect_rpc(urls, *, timeout: float = 10.0, log: logging.Logger | None = None) -> Web3:
    """Return a Web3 bound to the first RPC in ``urls`` that answers ``eth_blockNumber``."""
    log = log or logging.getLogger("payment-gateway.chain")
    urls = list(urls)
    last_err: Exception | None = None
    for rpc in urls:
        try:
            w3 = Web3(Web3.HTTPProvider(rpc, request_kwargs={"timeout": timeout}))
            block = w3.eth.block_number
            log.info("rpc connected url=%s block=%s", rpc, block)
            return w3
        except Exception as exc:
            last_err = exc
            log.warning("rpc unavailable url=%s err=%s", rpc, exc)
    raise TransportError(f"no working rpc among {len(urls)} urls: {last_err}")


class Web3BalanceOracle:
    """Native or ERC-20 balance of an address via a synchronous Web3 instance.

    Calls run in the default executor so the poller's loop is never blocked.
    """

    def __init__(self, w3: Web3):
        self.w3 = w3
        self._tokens: dict[str, object] = {}

    def _checksum(self, address: str) -> str:
        try:
            return Web3.to_checksum_address(address)
        except (ValueError, InvalidAddress) as exc:
            raise ContractCallError(f"invalid address {address!r}: {exc}") from exc

    def _token(self, token_contract: str):
        cs = self._checksum(token_contract)
        contract = self._tokens.get(cs)
        if contract is None:
            contract = self.w3.eth.contract(address=cs, abi=ERC20_ABI)
            self._tokens[cs] = contract
        return contract

    def _query_sync(self, address: str, token_contract: str | None) -> int:
        owner = self._checksum(address)
        if token_contract is None:
            return int(self.w3.eth.get_balance(owner))
        token = self._token(token_contract)
        return int(token.functions.balanceOf(owner).call())

    async def query(self, address: str, token_contract: str | None = None) -> int:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, lambda: self._query_sync(address, token_contract))
        except OracleError:
            raise
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            raise ContractCallError(f"balanceOf({address}) on {token_contract}: {exc}") from exc
        except (requests.exceptions.RequestException, ConnectionError, TimeoutError) as exc:
            raise TransportError(f"balance query for {address}: {exc}") from exc
        except Exception as exc:
            raise TransportError(f"balance query for {address}: {exc!r}") from exc
