"""Read-only Ethereum JSON-RPC client for ERC-20 token contracts."""

from __future__ import annotations

import hashlib
import itertools
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from app.core.chain import (
    SELECTOR_BALANCE_OF,
    SELECTOR_DECIMALS,
    SELECTOR_NAME,
    SELECTOR_SYMBOL,
    SELECTOR_TOTAL_SUPPLY,
    ABIDecodeError,
    decode_string,
    decode_uint256,
    encode_address_arg,
    encode_string,
    encode_uint256,
    get_network,
    is_valid_address,
    is_valid_tx_hash,
    scale_amount,
)
from app.core.config import settings
from app.core.exceptions import BusinessRuleError, UpstreamServiceError
from app.services.http_client import ExternalAPIError, request_json, run_with_retry

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


class BlockchainAPIError(ExternalAPIError):
    """JSON-RPC node call failed."""


@dataclass
class ERC20Info:
    address: str
    network: str
    name: Optional[str]
    symbol: Optional[str]
    decimals: Optional[int]
    total_supply: Optional[int]

    @property
    def is_erc20(self) -> bool:
        return self.name is not None and self.symbol is not None and self.total_supply is not None


@dataclass
class TokenBalance:
    contract_address: str
    holder: str
    network: str
    raw: int
    decimals: int

    @property
    def amount(self) -> Decimal:
        return scale_amount(self.raw, self.decimals)


@dataclass
class TransactionStatus:
    tx_hash: str
    network: str
    status: str
    block_number: Optional[int] = None
    gas_used: Optional[int] = None


@dataclass
class NetworkInfo:
    code: str
    name: str
    chain_id: Optional[int]
    expected_chain_id: int
    chain_id_matches: bool
    latest_block: Optional[int]
    rpc_configured: bool
    explorer_url: str


def _use_mock(network: str) -> bool:
    return settings.blockchain_mock_mode or not settings.rpc_url_for(network)


def _rpc(network: str, method: str, params: list[Any]) -> Any:
    if _use_mock(network):
        return _mock_rpc(network, method, params)

    url = settings.rpc_url_for(network)
    body = {"jsonrpc": "2.0", "id": next(_request_ids), "method": method, "params": params}

    def _call() -> Any:
        data = request_json(
            "POST",
            url,
            timeout=settings.blockchain_rpc_timeout,
            error_cls=BlockchainAPIError,
            json=body,
        )
        error = data.get("error") if isinstance(data, dict) else None
        if error:
            raise BlockchainAPIError(
                f"RPC error from {network}: {error.get('message')}",
                code=str(error.get("code")),
                retryable=False,
                payload=error,
            )
        return data.get("result")

    return run_with_retry(f"rpc.{network}.{method}", _call)


def _query(network: str, method: str, params: list[Any]) -> Any:
    try:
        return _rpc(network, method, params)
    except BlockchainAPIError as exc:
        raise UpstreamServiceError(f"Blockchain node unavailable: {exc}") from exc


def _eth_call(network: str, to: str, data: str) -> Optional[str]:
    try:
        return _rpc(network, "eth_call", [{"to": to, "data": data}, "latest"])
    except BlockchainAPIError as exc:
        if exc.retryable:
            raise UpstreamServiceError(f"Blockchain node unavailable: {exc}") from exc
        # Reverted calls mean the contract does not implement the method
        return None


def _resolve_network(network: str | None) -> str:
    code = (network or settings.default_blockchain).upper()
    try:
        get_network(code)
    except ValueError as exc:
        raise BusinessRuleError(str(exc)) from exc
    return code


def _require_address(address: str) -> None:
    if not is_valid_address(address):
        raise BusinessRuleError(f"Invalid address: {address}")


def get_erc20_info(address: str, network: str | None = None) -> ERC20Info:
    _require_address(address)
    network = _resolve_network(network)

    def _read(selector: str, decoder) -> Any:
        result = _eth_call(network, address, selector)
        if not result or result == "0x":
            return None
        try:
            return decoder(result)
        except (ABIDecodeError, ValueError):
            logger.info("Contract %s returned undecodable data for %s", address, selector)
            return None

    return ERC20Info(
        address=address,
        network=network,
        name=_read(SELECTOR_NAME, decode_string),
        symbol=_read(SELECTOR_SYMBOL, decode_string),
        decimals=_read(SELECTOR_DECIMALS, decode_uint256),
        total_supply=_read(SELECTOR_TOTAL_SUPPLY, decode_uint256),
    )


def validate_erc20_contract(address: str, network: str | None = None) -> ERC20Info:
    info = get_erc20_info(address, network)
    if not info.is_erc20:
        raise BusinessRuleError(f"{address} is not an ERC-20 contract on {info.network}")
    return info


def get_token_balance(contract_address: str, holder: str, network: str | None = None, decimals: int | None = None) -> TokenBalance:
    _require_address(contract_address)
    _require_address(holder)
    network = _resolve_network(network)
    result = _eth_call(network, contract_address, SELECTOR_BALANCE_OF + encode_address_arg(holder))
    raw = decode_uint256(result) if result and result != "0x" else 0
    if decimals is None:
        decimals_result = _eth_call(network, contract_address, SELECTOR_DECIMALS)
        decimals = decode_uint256(decimals_result) if decimals_result and decimals_result != "0x" else 18
    return TokenBalance(
        contract_address=contract_address,
        holder=holder,
        network=network,
        raw=raw,
        decimals=decimals,
    )


def get_transaction_status(tx_hash: str, network: str | None = None) -> TransactionStatus:
    if not is_valid_tx_hash(tx_hash):
        raise BusinessRuleError(f"Invalid transaction hash: {tx_hash}")
    network = _resolve_network(network)
    receipt = _query(network, "eth_getTransactionReceipt", [tx_hash])
    if not receipt:
        return TransactionStatus(tx_hash=tx_hash, network=network, status="PENDING")
    return TransactionStatus(
        tx_hash=tx_hash,
        network=network,
        status="SUCCESS" if int(receipt.get("status", "0x0"), 16) == 1 else "FAILED",
        block_number=int(receipt["blockNumber"], 16) if receipt.get("blockNumber") else None,
        gas_used=int(receipt["gasUsed"], 16) if receipt.get("gasUsed") else None,
    )


def get_network_info(network: str | None = None) -> NetworkInfo:
    """Ask the node which chain it serves; a mismatch usually means a misconfigured RPC URL."""
    code = _resolve_network(network)
    meta = get_network(code)
    reported = _query(code, "eth_chainId", [])
    latest = _query(code, "eth_blockNumber", [])
    chain_id = int(reported, 16) if reported else None
    if chain_id is not None and chain_id != meta.chain_id:
        logger.warning("RPC node for %s reports chain %s, expected %s", code, chain_id, meta.chain_id)
    return NetworkInfo(
        code=meta.code,
        name=meta.name,
        chain_id=chain_id,
        expected_chain_id=meta.chain_id,
        chain_id_matches=chain_id == meta.chain_id,
        latest_block=int(latest, 16) if latest else None,
        rpc_configured=bool(settings.rpc_url_for(code)),
        explorer_url=meta.explorer_url,
    )


def _mock_rpc(network: str, method: str, params: list[Any]) -> Any:
    """Deterministic node responses keyed by call arguments."""
    if method == "eth_blockNumber":
        return hex(5_000_000)
    if method == "eth_chainId":
        return hex(get_network(network).chain_id)
    if method == "eth_getTransactionReceipt":
        tx_hash = str(params[0]).lower()
        # Hashes ending in "0" are treated as still pending, "f" as reverted
        if tx_hash.endswith("0"):
            return None
        return {
            "transactionHash": tx_hash,
            "status": "0x0" if tx_hash.endswith("f") else "0x1",
            "blockNumber": hex(4_999_990),
            "gasUsed": hex(52_000),
        }
    if method == "eth_call":
        call: Dict[str, Any] = params[0]
        to = str(call.get("to", "")).lower()
        data = str(call.get("data", ""))
        # Contracts ending in "dead" behave like non-token contracts
        if to.endswith("dead"):
            return "0x"
        seed = int(hashlib.sha256(to.encode("utf-8")).hexdigest()[:8], 16)
        if data == SELECTOR_NAME:
            return encode_string(f"Mock Property Token {seed % 1000}")
        if data == SELECTOR_SYMBOL:
            return encode_string(f"MPT{seed % 1000}")
        if data == SELECTOR_DECIMALS:
            return encode_uint256(18)
        if data == SELECTOR_TOTAL_SUPPLY:
            return encode_uint256(1_000_000 * 10**18)
        if data.startswith(SELECTOR_BALANCE_OF):
            holder_seed = int(hashlib.sha256(data.encode("utf-8")).hexdigest()[:6], 16)
            return encode_uint256((holder_seed % 10_000) * 10**18)
        return "0x"
    raise BlockchainAPIError(f"Mock RPC has no handler for {method}")
