from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from rainpm.api.client import RainClient
from rainpm.core.config import ENV_CONFIG, ClientConfig
from rainpm.core.errors import RainError
from rainpm.core.models import TradeType, format_units
from rainpm.reporting import pnl_frame, positions_frame, write_frame

console = Console()

T = TypeVar("T")


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING if verbose == 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )
    # request lines from httpx are noise below -vv
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose > 1 else logging.WARNING)


def _run(config: ClientConfig, op: Callable[[RainClient], Awaitable[T]]) -> T:
    async def main() -> T:
        async with RainClient(config) as rain:
            return await op(rain)

    try:
        return asyncio.run(main())
    except RainError as e:
        raise click.ClickException(str(e)) from e


def _export(df, out: str) -> None:
    try:
        path = write_frame(df, out)
    except RainError as e:
        raise click.ClickException(str(e)) from e
    console.print(f"wrote [green]{path}[/]")


@click.group()
@click.option("--env", "environment", type=click.Choice(list(ENV_CONFIG)), default=None, help="Environment preset")
@click.option("--api-url", default=None, help="REST catalog base URL")
@click.option("--rpc", "rpc_url", default=None, help="JSON-RPC endpoint URL")
@click.option("--subgraph", "subgraph_url", default=None, help="Trade ledger GraphQL endpoint")
@click.option("--subgraph-key", default=None, help="Bearer key for the subgraph gateway")
@click.option("-v", "--verbose", count=True, help="-v for info, -vv for debug")
@click.pass_context
def cli(
    ctx: click.Context,
    environment: str | None,
    api_url: str | None,
    rpc_url: str | None,
    subgraph_url: str | None,
    subgraph_key: str | None,
    verbose: int,
) -> None:
    """rainpm: wallet positions and PnL for Rain prediction markets."""
    _setup_logging(verbose)
    try:
        base = ClientConfig.from_env(environment)
    except RainError as e:
        raise click.ClickException(str(e)) from e
    overrides: dict[str, Any] = {
        "api_url": api_url,
        "rpc_url": rpc_url,
        "subgraph_url": subgraph_url,
        "subgraph_api_key": subgraph_key,
    }
    ctx.obj = replace(base, **{k: v for k, v in overrides.items() if v is not None})


@cli.command("positions")
@click.argument("wallet")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write rows to .parquet or .csv")
@click.pass_obj
def positions_cmd(config: ClientConfig, wallet: str, out: str | None) -> None:
    """Every market where WALLET holds shares, escrow or liquidity."""
    result = _run(config, lambda rain: rain.get_positions(wallet))

    table = Table(title=f"Positions for {result.address}")
    for col in ("Market", "Status", "Option", "Shares", "Escrow", "Payout", "Liquidity"):
        table.add_column(col)
    for m in result.markets:
        d = m.base_token_decimals
        for o in m.options:
            payout = m.dynamic_payout[o.choice_index] if o.choice_index < len(m.dynamic_payout) else 0
            table.add_row(
                m.title,
                str(m.status),
                o.option_name,
                format_units(o.shares, d),
                format_units(o.amount_in_escrow, d),
                format_units(payout, d),
                format_units(m.user_liquidity, d),
            )
    console.print(table)
    console.print(f"[bold]{len(result.markets)}[/] markets with an open position")

    if out:
        _export(positions_frame(result), out)


@cli.command("position")
@click.argument("wallet")
@click.argument("market_id")
@click.pass_obj
def position_cmd(config: ClientConfig, wallet: str, market_id: str) -> None:
    """WALLET's position in MARKET_ID (shown even when empty)."""
    m = _run(config, lambda rain: rain.get_position_by_market(wallet, market_id))
    d = m.base_token_decimals

    table = Table(title=f"{m.title} [{m.status}]")
    for col in ("#", "Option", "Shares", "Shares in escrow", "Amount in escrow", "Price"):
        table.add_column(col)
    for o in m.options:
        table.add_row(
            str(o.choice_index),
            o.option_name,
            format_units(o.shares, d),
            format_units(o.shares_in_escrow, d),
            format_units(o.amount_in_escrow, d),
            format_units(o.current_price, d),
        )
    console.print(table)
    console.print(f"liquidity={format_units(m.user_liquidity, d)}  claimed={m.claimed}")


@cli.command("lp")
@click.argument("wallet")
@click.argument("market_id")
@click.pass_obj
def lp_cmd(config: ClientConfig, wallet: str, market_id: str) -> None:
    """WALLET's liquidity stake in MARKET_ID."""
    lp = _run(config, lambda rain: rain.get_lp_position(wallet, market_id))
    console.print(f"[bold]{lp.title}[/] ({lp.contract_address})")
    console.print(
        f"user_liquidity={lp.user_liquidity}  total_liquidity={lp.total_liquidity}  "
        f"pool_share={lp.pool_share_bps / 100:.2f}%  liquidity_share_bps={lp.liquidity_share_bps}"
    )


@cli.command("pnl")
@click.argument("wallet")
@click.option("--market", "market_address", default=None, help="Restrict to one market contract address")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write rows to .parquet or .csv")
@click.pass_obj
def pnl_cmd(config: ClientConfig, wallet: str, market_address: str | None, out: str | None) -> None:
    """Realized and unrealized PnL for WALLET."""
    result = _run(config, lambda rain: rain.get_pnl(wallet, market_address))

    table = Table(title=f"PnL for {result.address}")
    for col in ("Market", "Status", "Claimed", "Cost basis", "Value", "Realized", "Unrealized", "Total"):
        table.add_column(col)
    for m in result.markets:
        f = m.formatted()
        table.add_row(
            m.title,
            str(m.status),
            "yes" if m.claimed else "",
            f["total_cost_basis"],
            f["total_current_value"],
            f["realized_pnl"],
            f["unrealized_pnl"],
            f["total_pnl"],
        )
    console.print(table)
    totals = result.formatted()
    console.print(
        f"[bold]total[/]: realized={totals['total_realized_pnl']}  "
        f"unrealized={totals['total_unrealized_pnl']}  pnl={totals['total_pnl']}"
    )

    if out:
        _export(pnl_frame(result), out)


@cli.command("portfolio")
@click.argument("wallet")
@click.option("--token", "tokens", multiple=True, required=True, help="ERC-20 token address; repeat for more")
@click.pass_obj
def portfolio_cmd(config: ClientConfig, wallet: str, tokens: tuple[str, ...]) -> None:
    """Token balances and position value for WALLET."""
    pv = _run(config, lambda rain: rain.get_portfolio_value(wallet, list(tokens)))

    table = Table(title=f"Balances for {pv.address}")
    for col in ("Token", "Symbol", "Balance"):
        table.add_column(col)
    for tb in pv.token_balances:
        table.add_row(tb.token_address, tb.symbol, tb.formatted_balance)
    console.print(table)
    console.print(f"[bold]{len(pv.positions)}[/] positions, total payout value={pv.total_position_value}")


@cli.command("trades")
@click.argument("wallet")
@click.option("--market", "market_address", default=None, help="Restrict to one market contract address")
@click.option("--type", "types", multiple=True, type=click.Choice([t.value for t in TradeType]))
@click.option("--first", type=int, default=20, show_default=True)
@click.option("--skip", type=int, default=0, show_default=True)
@click.pass_obj
def trades_cmd(
    config: ClientConfig,
    wallet: str,
    market_address: str | None,
    types: tuple[str, ...],
    first: int,
    skip: int,
) -> None:
    """Most recent ledger rows for WALLET."""
    result = _run(
        config,
        lambda rain: rain.get_transactions(
            wallet,
            market_address=market_address,
            types=[TradeType(t) for t in types] or None,
            first=first,
            skip=skip,
        ),
    )

    table = Table(title=f"Trades for {result.address} ({result.total} total)")
    for col in ("Block", "Type", "Market", "Option", "Base amount", "Option amount", "Tx"):
        table.add_column(col)
    for ev in result.transactions:
        table.add_row(
            str(ev.block_number),
            str(ev.type),
            ev.market_address,
            "" if ev.option is None else str(ev.option),
            "" if ev.base_amount is None else str(ev.base_amount),
            "" if ev.option_amount is None else str(ev.option_amount),
            ev.tx_hash,
        )
    console.print(table)


if __name__ == "__main__":
    cli()
