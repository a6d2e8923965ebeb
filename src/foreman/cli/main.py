"""CLI entry point for Foreman."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Coroutine
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from foreman.cli.output import Printer
from foreman.core.engine import Engine, build_engine
from foreman.errors import ForemanError
from foreman.types.session import SessionOptions

EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit"}


@dataclass(slots=True)
class CliOptions:
    """Global options shared by every subcommand."""

    provider: str | None = None
    model: str | None = None
    style: str | None = None
    continue_session: bool = False
    resume: str | None = None
    cwd: str | None = None

    @property
    def session_options(self) -> SessionOptions:
        if self.continue_session:
            return SessionOptions(continue_session=True)
        if self.resume:
            return SessionOptions(session_id=self.resume)
        return SessionOptions()

    def build(self) -> Engine:
        return build_engine(
            self.cwd,
            session_options=self.session_options,
            style=self.style,
            provider=self.provider,
            model=self.model,
        )


@click.group(invoke_without_command=True)
@click.option("--provider", "-p", default=None, help="LLM provider (anthropic, openai, stub)")
@click.option("--model", "-m", default=None, help="Model ID or alias")
@click.option("--style", default=None, help="Output style name")
@click.option("--continue", "-c", "continue_session", is_flag=True, help="Continue the most recent session")
@click.option("--resume", default=None, metavar="ID", help="Resume a session by ID")
@click.option("--cwd", default=None, type=click.Path(file_okay=False), help="Project directory")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    provider: str | None,
    model: str | None,
    style: str | None,
    continue_session: bool,
    resume: str | None,
    cwd: str | None,
    verbose: bool,
) -> None:
    """Foreman -- agent orchestration engine.

    \b
    Usage:
      foreman                          (interactive chat)
      foreman task "Add type hints to utils.py"
      foreman query "Where is the session index written?"
      foreman -c chat                  (continue the last session)
      foreman sessions list
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliOptions(
        provider=provider,
        model=model,
        style=style,
        continue_session=continue_session,
        resume=resume,
        cwd=cwd,
    )
    if ctx.invoked_subcommand is None:
        ctx.invoke(chat)


@cli.command()
@click.pass_obj
def chat(opts: CliOptions) -> None:
    """Interactive chat (/clear, /style NAME, exit)."""
    _run(_chat(opts))


@cli.command()
@click.argument("text", nargs=-1, required=True)
@click.pass_obj
def task(opts: CliOptions, text: tuple[str, ...]) -> None:
    """Run a task in a fresh session."""
    _run(_task(opts, " ".join(text)))


@cli.command()
@click.argument("text", nargs=-1, required=True)
@click.pass_obj
def query(opts: CliOptions, text: tuple[str, ...]) -> None:
    """Answer a question in a fresh session."""
    _run(_query(opts, " ".join(text)))


@cli.group()
def sessions() -> None:
    """Manage stored sessions."""


@sessions.command("list")
@click.option("--all", "all_projects", is_flag=True, help="Include every project")
@click.option("--limit", "-n", default=20, help="Max sessions to show")
@click.pass_obj
def sessions_list(opts: CliOptions, all_projects: bool, limit: int) -> None:
    """List recent sessions for this project."""
    from foreman.core.config import load_settings
    from foreman.core.storage import SessionStorage

    project = Path(opts.cwd).resolve() if opts.cwd else Path.cwd()
    settings = load_settings(project)
    storage = SessionStorage(settings.sessions_dir)
    entries = storage.list_sessions(None if all_projects else project)
    Printer().sessions(entries[:limit])


# ---------------------------------------------------------------------------
# Async bodies
# ---------------------------------------------------------------------------


def _run(coro: Coroutine[Any, Any, None]) -> None:
    """Run *coro*; report a Foreman error as one line and exit non-zero."""
    try:
        asyncio.run(coro)
    except ForemanError as exc:
        Printer().error(str(exc))
        sys.exit(1)


async def _task(opts: CliOptions, text: str) -> None:
    engine = opts.build()
    printer = Printer()
    try:
        await engine.loop.execute_task(text)
        result = engine.loop.last_result
        if result is not None:
            printer.reply(result.text)
        printer.result(result)
    finally:
        await engine.aclose()


async def _query(opts: CliOptions, text: str) -> None:
    engine = opts.build()
    printer = Printer()
    try:
        printer.reply(await engine.loop.execute_query(text))
        printer.result(engine.loop.last_result)
    finally:
        await engine.aclose()


async def _chat(opts: CliOptions) -> None:
    engine = opts.build()
    printer = Printer()
    printer.notice(f"Foreman chat in {engine.loop.conversation.project_path}. Type 'exit' to quit.")
    try:
        while True:
            try:
                line = await asyncio.to_thread(click.prompt, "foreman", prompt_suffix="> ")
            except (EOFError, click.Abort):
                break
            line = line.strip()
            if not line:
                continue
            if line in EXIT_COMMANDS:
                break
            if line == "/clear":
                await engine.loop.clear_history()
                printer.notice("Conversation archived; starting fresh.")
                continue
            if line.startswith("/style"):
                _switch_style(engine, printer, line[len("/style"):].strip())
                continue
            try:
                printer.reply(await engine.loop.process_message(line))
            except ForemanError as exc:
                printer.error(str(exc))
    finally:
        await engine.aclose()


def _switch_style(engine: Engine, printer: Printer, name: str) -> None:
    if not name:
        active = engine.styles.active_style.name
        printer.notice("Styles: " + ", ".join(
            f"{s}*" if s == active else s for s in engine.styles.list_styles()
        ))
        return
    if engine.set_style(name):
        printer.notice(f"Output style set to {name}; it applies from the next new session.")
    else:
        printer.error(f"Unknown output style: {name}")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
