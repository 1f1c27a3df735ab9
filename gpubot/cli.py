import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from gpubot.core.exceptions import BotError

console = Console()
cli_app = typer.Typer(name="gpubot", help="Telegram bot that reports nvidia-smi GPU state")


def _run_async(coro):
    """Run async code from sync CLI context."""
    return asyncio.run(coro)


def _print_blocks(blocks: list[str]) -> None:
    for index, block in enumerate(blocks):
        if index:
            console.print(Rule(style="dim"))
        console.print(block)


def _fail(error: BotError) -> None:
    console.print(f"[bold red]{error.code}:[/bold red] {escape(error.message)}")
    stderr = error.details.get("stderr")
    if stderr:
        console.print(stderr, markup=False, style="dim")
    raise typer.Exit(code=1)


@cli_app.command("run")
def run():
    """Start polling Telegram for commands."""
    from gpubot.config import settings
    from gpubot.main import configure_logging, run_bot

    if not settings.token:
        console.print("[bold red]TOKEN environment variable is empty[/bold red]")
        raise typer.Exit(code=1)
    if settings.chat_id is None:
        console.print("[bold red]CHAT_ID environment variable is empty[/bold red]")
        raise typer.Exit(code=1)

    configure_logging(settings.gpubot_log_level)
    try:
        _run_async(run_bot(settings))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
    except BotError as e:
        _fail(e)


@cli_app.command("snapshot")
def snapshot():
    """Run nvidia-smi locally and print the /state reply."""
    from gpubot.config import settings
    from gpubot.main import build_runner
    from gpubot.services.report import collect_report
    from gpubot.services.report.formatter import RICH_MARKUP, render

    try:
        report = _run_async(collect_report(build_runner(settings)))
    except BotError as e:
        _fail(e)
    _print_blocks(render(report, RICH_MARKUP))


@cli_app.command("decode")
def decode_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved `nvidia-smi -q -x` output"),
):
    """Decode a saved nvidia-smi XML report and print the /state reply."""
    from gpubot.services.report.decoder import decode
    from gpubot.services.report.formatter import RICH_MARKUP, render

    try:
        report = decode(path.read_bytes())
    except BotError as e:
        _fail(e)
    _print_blocks(render(report, RICH_MARKUP))


def main():
    cli_app()


if __name__ == "__main__":
    main()
