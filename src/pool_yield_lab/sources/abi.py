"""Minimal ABI fragments, only what the integrations read."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def view_function(
    name: str,
    inputs: Sequence[str] = (),
    outputs: Sequence[str | dict[str, Any]] = ("uint256",),
) -> dict[str, Any]:
    """Build a ``view`` function fragment from solidity type names."""

    return {
        "inputs": [{"internalType": t, "name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "name": name,
        "outputs": [
            o if isinstance(o, dict) else {"internalType": o, "name": "", "type": o}
            for o in outputs
        ],
        "stateMutability": "view",
        "type": "function",
    }


ERC20_TOTAL_SUPPLY = view_function("totalSupply")
ERC20_DECIMALS = view_function("decimals", outputs=("uint8",))
ERC20_SYMBOL = view_function("symbol", outputs=("string",))

ERC4626_TOTAL_ASSETS = view_function("totalAssets")
ERC4626_CONVERT_TO_ASSETS = view_function("convertToAssets", inputs=("uint256",))

__all__ = [
    "ERC20_DECIMALS",
    "ERC20_SYMBOL",
    "ERC20_TOTAL_SUPPLY",
    "ERC4626_CONVERT_TO_ASSETS",
    "ERC4626_TOTAL_ASSETS",
    "view_function",
]
