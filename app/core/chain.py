from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}")
TX_HASH_PATTERN = re.compile(r"0x[a-fA-F0-9]{64}")

# 4-byte keccak selectors of the ERC-20 read methods
SELECTOR_NAME = "0x06fdde03"
SELECTOR_SYMBOL = "0x95d89b41"
SELECTOR_DECIMALS = "0x313ce567"
SELECTOR_TOTAL_SUPPLY = "0x18160ddd"
SELECTOR_BALANCE_OF = "0x70a08231"

WORD_HEX = 64


class Blockchain(str, Enum):
    SEPOLIA = "SEPOLIA"
    POLYGON = "POLYGON"
    MAINNET = "MAINNET"


@dataclass(frozen=True)
class Network:
    code: str
    name: str
    chain_id: int
    currency: str
    explorer_url: str


NETWORKS: dict[str, Network] = {
    Blockchain.SEPOLIA.value: Network("SEPOLIA", "Ethereum Sepolia", 11155111, "ETH", "https://sepolia.etherscan.io"),
    Blockchain.POLYGON.value: Network("POLYGON", "Polygon PoS", 137, "MATIC", "https://polygonscan.com"),
    Blockchain.MAINNET.value: Network("MAINNET", "Ethereum Mainnet", 1, "ETH", "https://etherscan.io"),
}


class ABIDecodeError(ValueError):
    pass


def is_valid_address(address: str | None) -> bool:
    return bool(address and ADDRESS_PATTERN.fullmatch(address))


def is_valid_tx_hash(tx_hash: str | None) -> bool:
    return bool(tx_hash and TX_HASH_PATTERN.fullmatch(tx_hash))


def get_network(code: str) -> Network:
    network = NETWORKS.get(code.upper())
    if network is None:
        raise ValueError(f"Unsupported blockchain network: {code}")
    return network


def encode_address_arg(address: str) -> str:
    return address.lower().removeprefix("0x").rjust(WORD_HEX, "0")


def _strip(data: str) -> str:
    if not data or data == "0x":
        raise ABIDecodeError("Empty call result")
    return data[2:] if data.startswith("0x") else data


def decode_uint256(data: str) -> int:
    raw = _strip(data)
    if len(raw) < WORD_HEX:
        raise ABIDecodeError("Result shorter than one ABI word")
    return int(raw[:WORD_HEX], 16)


def decode_string(data: str) -> str:
    """Decode an ABI `string` return value, tolerating legacy `bytes32` tokens."""
    raw = _strip(data)
    if len(raw) == WORD_HEX:
        return bytes.fromhex(raw).rstrip(b"\x00").decode("utf-8", errors="replace")
    if len(raw) < WORD_HEX * 2:
        raise ABIDecodeError("Result too short for a dynamic string")
    offset = int(raw[:WORD_HEX], 16) * 2
    length = int(raw[offset:offset + WORD_HEX], 16)
    start = offset + WORD_HEX
    payload = raw[start:start + length * 2]
    if len(payload) != length * 2:
        raise ABIDecodeError("String payload is truncated")
    return bytes.fromhex(payload).decode("utf-8", errors="replace")


def encode_string(value: str) -> str:
    payload = value.encode("utf-8").hex()
    padded = payload.ljust(((len(payload) + WORD_HEX - 1) // WORD_HEX) * WORD_HEX or WORD_HEX, "0")
    return "0x" + f"{32:064x}" + f"{len(value.encode('utf-8')):064x}" + padded


def encode_uint256(value: int) -> str:
    return "0x" + f"{value:064x}"


def scale_amount(raw: int, decimals: int) -> Decimal:
    return Decimal(raw) / (Decimal(10) ** decimals)
