"""ABI fragments: market ("trade pool") views, ERC-20 views, Multicall3."""

from __future__ import annotations


def _view(name: str, inputs: list[tuple[str, str]], output: str) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": output}],
    }


TRADE_POOL_ABI: list[dict] = [
    _view("userLiquidity", [("user", "address")], "uint256"),
    _view("claimed", [("user", "address")], "bool"),
    _view("getDynamicPayout", [("user", "address")], "uint256[]"),
    _view("userVotes", [("optionId", "uint256"), ("user", "address")], "uint256"),
    _view("userVotesInEscrow", [("optionId", "uint256"), ("user", "address")], "uint256"),
    _view("userAmountInEscrow", [("optionId", "uint256"), ("user", "address")], "uint256"),
    _view("getCurrentPrice", [("option", "uint256")], "uint256"),
    _view("totalLiquidity", [], "uint256"),
    _view("liquidityShare", [], "uint256"),
]

ERC20_ABI: list[dict] = [
    _view("balanceOf", [("account", "address")], "uint256"),
    _view("decimals", [], "uint8"),
    _view("symbol", [], "string"),
]

MULTICALL3_ABI: list[dict] = [
    {
        "type": "function",
        "name": "aggregate3",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "calls",
                "type": "tuple[]",
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "allowFailure", "type": "bool"},
                    {"name": "callData", "type": "bytes"},
                ],
            }
        ],
        "outputs": [
            {
                "name": "returnData",
                "type": "tuple[]",
                "components": [
                    {"name": "success", "type": "bool"},
                    {"name": "returnData", "type": "bytes"},
                ],
            }
        ],
    },
    _view("getEthBalance", [("addr", "address")], "uint256"),
]
