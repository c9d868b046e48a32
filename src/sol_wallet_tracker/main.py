"""
Main CLI application for Solana Wallet Tracker.
"""

from .utils import (
    is_valid_solana_address,
    clean_token_list,
    format_number,
    format_usd,
    shorten_address,
)
from .models import AnalysisResult, RecurringWallet, WalletOverlap
from typing import Optional, List
import csv
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.panel import Panel

from .config import Config
from .api_clients import SolanaTrackerClient
from .exceptions import TrackerAPIError
from .analysis import TokenOverlapAnalyzer
from .recurring import RecurringWalletScanner

# Logging setup
import logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="sol-tracker",
    help="Find wallets coordinating across Solana tokens and score how suspicious they look."
)

console = Console()

SORT_KEYS = {
    "score": lambda o: (o.score or 0, len(o.tokens)),
    "portfolio": lambda o: (o.portfolio_value or 0, o.score or 0),
    "holdings": lambda o: (len(o.tokens), sum(o.percentages.values())),
}


def load_config() -> Config:
    """Load application configuration."""
    try:
        return Config.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        console.print(
            "\n[yellow]Please create a .env file with your API key:[/yellow]")
        console.print("SOLANATRACKER_API_KEY=your_key_here")
        raise typer.Exit(1)


def build_analyzer(config: Config) -> TokenOverlapAnalyzer:
    return TokenOverlapAnalyzer(SolanaTrackerClient(config), config)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every request")):
    if verbose:
        logging.getLogger().setLevel(logging.INFO)
        logging.getLogger("sol_wallet_tracker").setLevel(logging.DEBUG)


def sort_overlaps(overlaps: List[WalletOverlap], sort_by: str) -> List[WalletOverlap]:
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unsupported sort key: {sort_by}")
    return sorted(overlaps, key=SORT_KEYS[sort_by], reverse=True)


def display_results_table(result: AnalysisResult, sort_by: str = "score"):
    """Display overlap results in a rich table."""

    token_lines = "\n".join(
        f"[bold blue]{t.name}[/bold blue] ([green]{t.symbol}[/green]) "
        f"[yellow]{t.token}[/yellow] holders: {t.holder_count or 0}"
        for t in result.processed_tokens
    )
    console.print(Panel(token_lines or "No tokens processed",
                        title="Analyzed Tokens", expand=False))

    for token, reason in result.skipped_tokens.items():
        console.print(f"[red]Skipped {token}: {reason}[/red]")

    console.print(f"\n[bold]Analysis Summary:[/bold]")
    console.print(
        f"Overlapping Wallets: [green]{len(result.overlaps):,}[/green]")
    console.print(
        f"Deep Analyzed: [green]{sum(1 for o in result.overlaps if o.analyzed):,}[/green]")

    if not result.overlaps:
        console.print("[yellow]No overlapping wallets found.[/yellow]")
        return

    table = Table(title="\nOverlapping Wallets")
    table.add_column("Rank", style="cyan", no_wrap=True)
    table.add_column("Wallet", style="magenta", no_wrap=True)
    table.add_column("Score", style="red", justify="right")
    table.add_column("Tokens", style="green", justify="right")
    table.add_column("Holdings", style="white")
    table.add_column("Portfolio", style="green", justify="right")
    table.add_column("Win Rate", style="white", justify="right")
    table.add_column("PnL", style="white", justify="right")
    table.add_column("Tags", style="blue")

    for i, overlap in enumerate(sort_overlaps(result.overlaps, sort_by), 1):
        holdings = ", ".join(
            f"{result.token_map[t].symbol} {overlap.percentages.get(t, 0):.2f}%"
            for t in overlap.tokens
        )
        summary = overlap.wallet_summary
        table.add_row(
            str(i),
            shorten_address(overlap.address),
            str(overlap.score) if overlap.score is not None else "-",
            str(len(overlap.tokens)),
            holdings,
            format_usd(overlap.portfolio_value),
            f"{summary.win_rate}%" if summary else "-",
            format_number(summary.realized_pnl + summary.unrealized_pnl) if summary else "-",
            ", ".join(overlap.tags or []),
        )

    console.print(table)


def overlap_to_dict(overlap: WalletOverlap) -> dict:
    summary = overlap.wallet_summary
    return {
        'address': overlap.address,
        'tokens': overlap.tokens,
        'percentages': overlap.percentages,
        'score': overlap.score,
        'tags': overlap.tags,
        'portfolio_value': overlap.portfolio_value,
        'is_top_trader': overlap.is_top_trader,
        'top_trader_matches': [vars(m) for m in overlap.top_trader_matches],
        'max_holding_hours': overlap.max_holding_hours,
        'wallet_summary': vars(summary) if summary else None,
        'unavailable': sorted(overlap.unavailable),
    }


def export_to_json(result: AnalysisResult, filepath: str):
    """Export analysis results to JSON."""
    data = {
        'timestamp': result.timestamp.isoformat(),
        'tokens': [
            {
                'token': t.token,
                'name': t.name,
                'symbol': t.symbol,
                'total_supply': t.total_supply,
                'decimals': t.decimals,
                'holder_count': t.holder_count,
                'creation_time': t.creation_time.isoformat() if t.creation_time else None,
            }
            for t in result.processed_tokens
        ],
        'skipped_tokens': result.skipped_tokens,
        'overlaps': [overlap_to_dict(o) for o in result.overlaps],
    }

    with open(filepath, 'w') as jsonfile:
        json.dump(data, jsonfile, indent=2, default=str)


def export_to_csv(result: AnalysisResult, filepath: str):
    """Export analysis results to CSV, one row per wallet."""
    with open(filepath, 'w', newline='') as csvfile:
        writer = csv.writer(csvfile)

        writer.writerow([
            'Rank', 'Wallet_Address', 'Score', 'Token_Count', 'Tokens',
            'Portfolio_Value_USD', 'Win_Rate', 'Realized_PnL',
            'Unrealized_PnL', 'Total_Trades', 'Is_Top_Trader', 'Tags'
        ])

        for i, overlap in enumerate(result.overlaps, 1):
            summary = overlap.wallet_summary
            writer.writerow([
                i,
                overlap.address,
                overlap.score if overlap.score is not None else '',
                len(overlap.tokens),
                ';'.join(result.token_map[t].symbol for t in overlap.tokens),
                overlap.portfolio_value if overlap.portfolio_value is not None else '',
                summary.win_rate if summary else '',
                summary.realized_pnl if summary else '',
                summary.unrealized_pnl if summary else '',
                summary.total_trades if summary else '',
                overlap.is_top_trader,
                ';'.join(overlap.tags or []),
            ])


def display_recurring_table(title: str, wallets: List[RecurringWallet]):
    if not wallets:
        console.print(f"[yellow]No {title.lower()} found.[/yellow]")
        return

    table = Table(title=f"\n{title} ({len(wallets)})")
    table.add_column("Wallet", style="magenta", no_wrap=True)
    table.add_column("Occurrences", style="cyan", justify="right")
    table.add_column("Tokens", style="green")
    table.add_column("Total PnL", style="white", justify="right")
    table.add_column("Avg ROI", style="white", justify="right")
    table.add_column("Win Rate", style="white", justify="right")

    for wallet in wallets:
        symbols = dict.fromkeys(p.get("token_symbol", "") for p in wallet.data_points)
        table.add_row(
            shorten_address(wallet.address),
            str(wallet.occurrences),
            ", ".join(symbols),
            format_usd(wallet.total_pnl),
            f"{wallet.avg_roi:.1f}%",
            f"{wallet.win_rate}%",
        )

    console.print(table)


def check_tokens(tokens: List[str]) -> List[str]:
    cleaned = clean_token_list(tokens)
    for token in cleaned:
        if not is_valid_solana_address(token):
            console.print(
                f"[yellow]Warning: {token} does not look like a Solana address[/yellow]")
    return cleaned


@app.command()
def analyze(
    tokens: List[str] = typer.Argument(..., help="Token mint addresses"),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Output format: table, csv, json"),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output file path"),
    sort_by: str = typer.Option(
        "score", "--sort", "-s", help="Table order: score, portfolio, holdings"),
    max_wallets: Optional[int] = typer.Option(
        None, "--max-wallets", "-m", help="Maximum number of overlapping wallets to deep analyze")
):
    """Find wallets holding several of the given tokens and score them."""

    config = load_config()
    if max_wallets is not None:
        config.deep_analysis_limit = max_wallets
    if output_format:
        config.output_format = output_format

    token_list = check_tokens(tokens)
    if len(token_list) < 2:
        console.print("[red]Provide at least 2 distinct tokens to find overlaps.[/red]")
        raise typer.Exit(1)

    analyzer = build_analyzer(config)

    console.print(
        f"[cyan]Analyzing {len(token_list)} tokens (requests are spaced "
        f"{config.min_request_interval:g}s apart)...[/cyan]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        def on_progress(stage: str, current: int, total: int):
            label = "Fetching token" if stage == "tokens" else "Profiling wallet"
            progress.update(task, description=f"{label} {current}/{total}")

        try:
            result = analyzer.analyze_tokens(token_list, progress=on_progress)
        except Exception as e:
            logger.debug("Analysis failed", exc_info=True)
            console.print(f"[red]Analysis failed: {e}[/red]")
            raise typer.Exit(1)
        progress.update(task, description="✓ Analysis complete")

    if config.output_format == "table" or not output_file:
        display_results_table(result, sort_by)

    if output_file:
        if config.output_format == "csv":
            export_to_csv(result, output_file)
            console.print(f"[green]Results exported to {output_file}[/green]")
        elif config.output_format == "json":
            export_to_json(result, output_file)
            console.print(f"[green]Results exported to {output_file}[/green]")
        else:
            console.print(
                f"[yellow]Unsupported output format: {config.output_format}[/yellow]")


@app.command("first-buyers")
def first_buyers(token: str = typer.Argument(..., help="Token mint address")):
    """List the earliest buyers of a token."""
    analyzer = build_analyzer(load_config())
    buyers = analyzer.get_first_buyers(token.strip())

    if not buyers:
        console.print("[yellow]No first buyers returned.[/yellow]")
        return

    table = Table(title=f"\nFirst Buyers of {shorten_address(token)}")
    table.add_column("Rank", style="cyan", no_wrap=True)
    table.add_column("Wallet", style="magenta", no_wrap=True)
    table.add_column("First Buy", style="white", no_wrap=True)
    table.add_column("Invested", style="white", justify="right")
    table.add_column("Total PnL", style="green", justify="right")
    table.add_column("Buys/Sells", style="white", justify="right")

    for i, buyer in enumerate(buyers, 1):
        table.add_row(
            str(i),
            shorten_address(buyer.wallet),
            buyer.first_buy_time.strftime("%Y-%m-%d %H:%M") if buyer.first_buy_time else "-",
            format_usd(buyer.total_invested),
            format_usd(buyer.total),
            f"{buyer.buy_transactions}/{buyer.sell_transactions}",
        )
    console.print(table)


@app.command("top-traders")
def top_traders(token: str = typer.Argument(..., help="Token mint address")):
    """List the top traders of a token."""
    analyzer = build_analyzer(load_config())
    traders = analyzer.get_top_traders(token.strip())

    if not traders:
        console.print("[yellow]No top traders returned.[/yellow]")
        return

    table = Table(title=f"\nTop Traders of {shorten_address(token)}")
    table.add_column("Rank", style="cyan", no_wrap=True)
    table.add_column("Wallet", style="magenta", no_wrap=True)
    table.add_column("PnL", style="green", justify="right")
    table.add_column("ROI", style="white", justify="right")
    table.add_column("Trades", style="white", justify="right")

    for i, trader in enumerate(traders, 1):
        table.add_row(str(i), shorten_address(trader.wallet),
                      format_usd(trader.pnl), f"{trader.roi:.1f}%", str(trader.trades))
    console.print(table)


@app.command()
def pnl(wallet: str = typer.Argument(..., help="Wallet address")):
    """Show a wallet's PnL summary."""
    analyzer = build_analyzer(load_config())
    summary = analyzer.get_wallet_pnl(wallet.strip())

    if summary is None:
        console.print(f"[yellow]No PnL data available for {wallet}.[/yellow]")
        raise typer.Exit(1)

    console.print(Panel(
        f"Realized PnL: [green]{format_usd(summary.realized_pnl)}[/green]\n"
        f"Unrealized PnL: [green]{format_usd(summary.unrealized_pnl)}[/green]\n"
        f"Win Rate: {summary.win_rate}% "
        f"({summary.profitable_positions} up / {summary.losing_positions} down)",
        title=f"PnL for {shorten_address(wallet)}",
        expand=False
    ))


@app.command()
def recurring(tokens: List[str] = typer.Argument(..., help="Token mint addresses")):
    """Find wallets that are early buyers or top traders of several tokens."""
    token_list = check_tokens(tokens)
    if len(token_list) < 2:
        console.print(
            "[red]Please analyze at least 2 tokens to find recurring wallets.[/red]")
        raise typer.Exit(1)

    analyzer = build_analyzer(load_config())

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Fetching token info...", total=None)
        infos = []
        for token in token_list:
            try:
                infos.append(analyzer.client.get_token_info(token))
            except TrackerAPIError as e:
                console.print(f"[red]Skipping {token}: {e}[/red]")

        if len(infos) < 2:
            console.print("[red]Fewer than 2 tokens could be loaded.[/red]")
            raise typer.Exit(1)

        def on_progress(current: int, total: int):
            progress.update(task, description=f"{current} / {total} requests completed")

        try:
            scan = RecurringWalletScanner(analyzer).scan(infos, progress=on_progress)
        except Exception as e:
            logger.debug("Recurring scan failed", exc_info=True)
            console.print(f"[red]Failed to complete scan: {e}[/red]")
            raise typer.Exit(1)
        progress.update(task, description="✓ Scan complete")

    display_recurring_table("Recurring Early Buyers", scan.early_buyers)
    display_recurring_table("Recurring Top Traders", scan.top_traders)


@app.command()
def setup():
    """Setup the application by creating a .env file template."""
    env_content = """# Solana Wallet Tracker Configuration

# Required: SolanaTracker data API key (https://www.solanatracker.io/data-api)
SOLANATRACKER_API_KEY=your_solanatracker_api_key_here

# Rate limiting (seconds)
MIN_REQUEST_INTERVAL=2.0
THROTTLE_BACKOFF=5.0
MAX_THROTTLE_RETRIES=3

# Analysis Settings
DEEP_ANALYSIS_LIMIT=50

# Output Settings
OUTPUT_FORMAT=table
"""

    env_path = Path(".env")
    if env_path.exists():
        console.print("[yellow].env file already exists![/yellow]")
        if not typer.confirm("Overwrite existing .env file?"):
            return

    with open(env_path, 'w') as f:
        f.write(env_content)

    console.print(f"[green]Created .env file at {env_path.absolute()}[/green]")
    console.print(
        "\n[yellow]Please edit the .env file and add your API key:[/yellow]")
    console.print(
        "1. Replace 'your_solanatracker_api_key_here' with your real key")
    console.print("2. Run: sol-tracker analyze <token_a> <token_b>")


if __name__ == "__main__":
    app()
