# schemamend/cli.py
"""
schemamend CLI -- Click commands with a rich terminal UI.

Provides the ``schemamend`` console entry-point declared in pyproject.toml as
``schemamend.cli:cli``:

- extract:  list the bracket-balanced candidate documents found in text
- recover:  recover a typed value for a model/type given by import path
- schema:   show the schema tree built for a model/type
- config:   show the effective configuration
"""

from __future__ import annotations

import importlib
import json
from typing import Any, Optional, TextIO

import click
from pydantic import TypeAdapter
from rich.console import Console
from rich.markup import escape as _esc
from rich.tree import Tree

from . import __version__
from . import cli_theme as theme
from .config import get_config
from .decoder import DecodeOptions
from .errors import SchemaDefinitionError
from .extractor import iter_candidates
from .recovery import recover
from .schema import SchemaNode, schema_for

console = Console()

_PREVIEW_CHARS = 60


def _print_version(
    ctx: click.Context,
    _param: click.Parameter,
    value: bool,
) -> None:
    if not value or ctx.resilient_parsing:
        return
    theme.print_version(__version__, console)
    ctx.exit()


def _load_target(path: str) -> Any:
    """Import ``package.module:Attr`` (or ``module:Outer.Inner``)."""
    module_name, sep, attr_path = path.partition(":")
    if not sep or not module_name or not attr_path:
        raise click.BadParameter(f"expected 'module:Attr', got {path!r}", param_hint="--model")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"cannot import {module_name!r}: {exc}", param_hint="--model") from exc
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise click.BadParameter(f"{module_name!r} has no attribute {attr_path!r}", param_hint="--model") from exc
    return target


def _preview(text: str) -> str:
    flat = " ".join(text.split())
    if len(flat) > _PREVIEW_CHARS:
        flat = flat[: _PREVIEW_CHARS - 3] + "..."
    return flat


# ---------------------------------------------------------------------------
# Main CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Write a session log (and mirror it to stderr) at this level.",
)
def cli(log_level: Optional[str]) -> None:
    """schemamend -- recover typed data from free-form model output."""
    if log_level:
        from .utils.logging import setup_logging

        setup_logging(level=log_level, console_output=True)


# ---------------------------------------------------------------------------
# extract
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit candidates as a JSON list.")
def extract(source: TextIO, as_json: bool) -> None:
    """List candidate documents found in SOURCE (file or '-' for stdin).

    \b
    Examples:
      schemamend extract reply.txt
      cat reply.txt | schemamend extract --json
    """
    text = source.read()
    candidates = list(iter_candidates(text))

    if as_json:
        click.echo(json.dumps(
            [{"index": i, "start": c.start, "end": c.end, "text": c.span} for i, c in enumerate(candidates)],
            ensure_ascii=False,
            indent=2,
        ))
        return

    if not candidates:
        console.print(theme.err("No bracket-balanced document found."))
        return

    t = theme.make_table(title="Candidates")
    t.add_column("#", justify="right")
    t.add_column("Start", justify="right")
    t.add_column("End", justify="right")
    t.add_column("Preview")
    for i, candidate in enumerate(candidates):
        t.add_row(str(i), str(candidate.start), str(candidate.end), _esc(_preview(candidate.span)))
    console.print(t)
    console.print(theme.info(f"{len(candidates)} candidate(s); the last one is tried first."))


# ---------------------------------------------------------------------------
# recover
# ---------------------------------------------------------------------------


@cli.command("recover")
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--model", "model_path", required=True, help="Target type as 'module:Attr' (e.g. app.models:Person).")
@click.option("--case-sensitive", is_flag=True, default=False, help="Match property names exactly.")
@click.option("--lax", is_flag=True, default=False, help="Let the final decode apply pydantic's lax conversions.")
@click.option("--attempts", "show_attempts", is_flag=True, default=False, help="Show why each candidate was abandoned.")
def recover_cmd(
    source: TextIO,
    model_path: str,
    case_sensitive: bool,
    lax: bool,
    show_attempts: bool,
) -> None:
    """Recover a value of --model from the text in SOURCE.

    Prints the recovered value as JSON.  Exits with status 1 when nothing
    could be recovered.

    \b
    Examples:
      schemamend recover --model app.models:Person reply.txt
      llm "..." | schemamend recover --model builtins:int
    """
    target = _load_target(model_path)
    options = DecodeOptions(case_insensitive=not case_sensitive, strict=not lax)

    try:
        result = recover(source.read(), target, options=options)
    except SchemaDefinitionError as exc:
        raise click.ClickException(str(exc)) from exc

    if show_attempts or not result.ok:
        _print_attempts(result.attempts)

    if not result.ok:
        console.print(theme.err(f"Could not recover a {_esc(model_path)} value."))
        raise SystemExit(1)

    dumped = TypeAdapter(target).dump_python(result.value, mode="json")
    click.echo(json.dumps(dumped, ensure_ascii=False, indent=2))


def _print_attempts(attempts: list) -> None:
    if not attempts:
        return
    t = theme.make_table(title="Abandoned attempts")
    t.add_column("Candidate", justify="right")
    t.add_column("Stage")
    t.add_column("Reason")
    for attempt in attempts:
        label = "direct" if attempt.index < 0 else str(attempt.index)
        t.add_row(label, theme.badge(attempt.stage, "warn"), _esc(attempt.error))
    console.print(t)


# ---------------------------------------------------------------------------
# schema
# ---------------------------------------------------------------------------


@cli.command("schema")
@click.option("--model", "model_path", required=True, help="Target type as 'module:Attr'.")
def schema_cmd(model_path: str) -> None:
    """Show the schema tree used to repair values of --model."""
    target = _load_target(model_path)
    try:
        node = schema_for(target)
    except SchemaDefinitionError as exc:
        raise click.ClickException(str(exc)) from exc

    tree = Tree(f"[bold {theme.CORAL}]{_esc(model_path)}[/bold {theme.CORAL}] {_describe(node)}")
    _grow(tree, node)
    console.print(tree)


def _describe(node: SchemaNode) -> str:
    if node.is_any:
        return "[dim]any[/dim]"
    return "[dim]" + " | ".join(sorted(t.value for t in node.declared_types)) + "[/dim]"


def _grow(branch: Tree, node: SchemaNode) -> None:
    for name, child in node.properties.items():
        marker = "*" if name in node.required else ""
        _grow(branch.add(f"{_esc(name)}{marker} {_describe(child)}"), child)
    if node.item is not None:
        _grow(branch.add(f"{_esc('[items]')} {_describe(node.item)}"), node.item)
    if node.additional is not None:
        _grow(branch.add(f"{_esc('[additional]')} {_describe(node.additional)}"), node.additional)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.command()
def config() -> None:
    """Show the effective configuration (SCHEMAMEND_* env vars, .env, defaults)."""
    cfg = get_config()

    theme.section("Hardening", console, "01")
    t = theme.make_kv_table()
    t.add_row("max_input_chars", str(cfg.max_input_chars))
    t.add_row("max_depth", str(cfg.max_depth))
    t.add_row("max_candidates", str(cfg.max_candidates))
    console.print(t)

    theme.section("Decoding", console, "02")
    t = theme.make_kv_table()
    t.add_row("case_insensitive", str(cfg.case_insensitive))
    t.add_row("strict_decode", str(cfg.strict_decode))
    console.print(t)

    theme.section("Paths", console, "03")
    t = theme.make_kv_table()
    t.add_row("home_dir", str(cfg.home_dir))
    t.add_row("log_dir", str(cfg.log_dir))
    t.add_row("log_level", cfg.log_level)
    console.print(t)
