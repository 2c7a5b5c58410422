from __future__ import annotations

import asyncio
from collections.abc import Sequence

from eth_utils import is_address

from rainpm.abi import ERC20, MULTICALL3
from rainpm.batch.cursor import OutcomeCursor, ReadPlan
from rainpm.core.constants import NATIVE_DECIMALS
from rainpm.core.errors import ValidationError
from rainpm.core.interfaces import IBatchReader
from rainpm.core.models import AccountBalance, MarketPositionValue, PortfolioValue, TokenBalance
from rainpm.core.use_cases.positions import PositionReconstructor, require_wallet


class PortfolioService:
    """Token balances and position value for a wallet."""

    def __init__(self, positions: PositionReconstructor, reader: IBatchReader, multicall_address: str) -> None:
        self._positions = positions
        self._reader = reader
        self._multicall_address = multicall_address

    async def get_account_balance(self, wallet: str, token_addresses: Sequence[str] = ()) -> AccountBalance:
        """Native balance plus balanceOf/decimals/symbol per token, in one batch."""
        require_wallet(wallet)
        for token in token_addresses:
            if not is_address(token):
                raise ValidationError(f"token address {token!r} is not a valid EVM address")

        plan = ReadPlan()
        plan.add(self._multicall_address, MULTICALL3["getEthBalance"], wallet)
        for token in token_addresses:
            plan.add(token, ERC20["balanceOf"], wallet)
            plan.add(token, ERC20["decimals"])
            plan.add(token, ERC20["symbol"])

        cur = OutcomeCursor(await self._reader.execute(plan.requests))
        native = cur.uint()
        balances = [
            TokenBalance(
                token_address=token,
                balance=cur.uint(),
                decimals=cur.uint(default=NATIVE_DECIMALS),
                symbol=cur.text(default="UNKNOWN"),
            )
            for token in token_addresses
        ]
        return AccountBalance(address=wallet, native_balance=native, token_balances=balances)

    async def get_portfolio_value(self, wallet: str, token_addresses: Sequence[str]) -> PortfolioValue:
        """Positions valued at their dynamic payout, alongside token balances."""
        require_wallet(wallet)
        if not token_addresses:
            raise ValidationError("tokenAddresses is required")

        positions, balance = await asyncio.gather(
            self._positions.get_positions(wallet),
            self.get_account_balance(wallet, token_addresses),
        )
        values = [
            MarketPositionValue(
                market_id=m.market_id,
                title=m.title,
                status=m.status,
                contract_address=m.contract_address,
                dynamic_payout=m.dynamic_payout,
                total_position_value=sum(m.dynamic_payout),
            )
            for m in positions.markets
        ]
        return PortfolioValue(
            address=wallet,
            token_balances=balance.token_balances,
            positions=values,
            total_position_value=sum(v.total_position_value for v in values),
        )
