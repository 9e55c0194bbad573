"""CLI entry point for ucan-inspect.

Invoked as::

    ucan-inspect [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m ucan_inspect.cli.main

Commands
--------
parse      Decode a token and show its delegation
chain      Resolve and show the full proof chain
validate   Validate the proof chain (exit code 1 when invalid)
analyze    Show invocation and capability analysis
version    Show version information

``SOURCE`` is a file path, or ``-`` to read from stdin.
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Any, BinaryIO, Callable, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ucan_inspect import __version__
from ucan_inspect.config import InspectorConfig
from ucan_inspect.decoding.claims import TokenFormat
from ucan_inspect.delegation.link import DelegationLink
from ucan_inspect.errors import InspectError
from ucan_inspect.inspector import Inspector
from ucan_inspect.validation.issues import Severity, ValidationIssue

console = Console()

_SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="ucan-inspect")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Decode, resolve and validate UCAN delegation tokens."""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]ucan-inspect[/bold] v{__version__}")


# ------------------------------------------------------------------
# Shared options
# ------------------------------------------------------------------


def token_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the SOURCE argument and the options every token command takes."""
    func = click.option(
        "--max-depth",
        type=click.IntRange(min=0),
        default=None,
        help="Maximum proof chain depth to resolve.",
    )(func)
    func = click.option(
        "--json", "as_json", is_flag=True, default=False, help="Emit JSON instead of tables."
    )(func)
    func = click.option(
        "--format",
        "token_format",
        type=click.Choice([fmt.value for fmt in TokenFormat]),
        default=None,
        help="Skip format detection and decode as this format.",
    )(func)
    return click.argument("source", type=click.File("rb"))(func)


def _inspector(max_depth: Optional[int]) -> Inspector:
    if max_depth is None:
        return Inspector()
    return Inspector(InspectorConfig(max_chain_depth=max_depth))


def _format_hint(token_format: Optional[str]) -> Optional[TokenFormat]:
    return TokenFormat(token_format) if token_format else None


def _fail(exc: InspectError) -> None:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    sys.exit(1)


def _emit_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _format_issue(issue: ValidationIssue) -> str:
    style = _SEVERITY_STYLES[issue.severity]
    return f"[{style}]{issue.kind.value}[/{style}]: {escape(issue.message)}"


def _print_link(link: DelegationLink) -> None:
    console.print(f"\n[bold]Level {link.level}[/bold]  {escape(link.content_id)}")
    console.print(f"  Format:     {link.token_format.value}")
    console.print(f"  Issuer:     {escape(link.issuer) or '(none)'}")
    console.print(f"  Audience:   {escape(link.audience) or '(none)'}")
    console.print(
        f"  Not before: {link.not_before.isoformat() if link.not_before else '(none)'}"
    )
    console.print(
        f"  Expires:    {link.expiration.isoformat() if link.expiration else '(never)'}"
    )
    signature = link.signature
    if signature.verified:
        status = "[green]valid[/green]" if signature.valid else "[red]invalid[/red]"
    else:
        status = "[dim]unverified[/dim]"
    console.print(f"  Signature:  {escape(signature.algorithm)} ({status})")
    if link.proofs:
        console.print(f"  Proofs:     {escape(', '.join(p.content_id for p in link.proofs))}")

    if link.capabilities:
        table = Table(show_header=True)
        table.add_column("Resource", style="cyan")
        table.add_column("Ability")
        table.add_column("Category")
        table.add_column("Caveats")
        for cap in link.capabilities:
            table.add_row(
                escape(cap.resource),
                escape(cap.ability),
                cap.category.value,
                escape(json.dumps(cap.caveats, default=str)) if cap.caveats else "",
            )
        console.print(table)


# ------------------------------------------------------------------
# Token commands
# ------------------------------------------------------------------


@cli.command(name="parse")
@token_options
def parse_command(
    source: BinaryIO,
    token_format: Optional[str],
    as_json: bool,
    max_depth: Optional[int],
) -> None:
    """Decode the token in SOURCE and show its delegation."""
    from ucan_inspect.schemas import serialize_link

    try:
        link = _inspector(max_depth).parse(source.read(), _format_hint(token_format))
    except InspectError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(serialize_link(link))
        return
    _print_link(link)


@cli.command(name="chain")
@token_options
def chain_command(
    source: BinaryIO,
    token_format: Optional[str],
    as_json: bool,
    max_depth: Optional[int],
) -> None:
    """Resolve the proof chain of the token in SOURCE."""
    from ucan_inspect.chain.info import describe_chain
    from ucan_inspect.schemas import chain_info_to_model, serialize_chain

    try:
        chain = _inspector(max_depth).parse_chain(source.read(), _format_hint(token_format))
    except InspectError as exc:
        _fail(exc)
        return

    info = describe_chain(chain)
    if as_json:
        _emit_json(
            {
                "chain": serialize_chain(chain),
                "info": chain_info_to_model(info).model_dump(by_alias=True),
            }
        )
        return

    for link in chain:
        _print_link(link)
    complete = "[green]complete[/green]" if info.is_complete else "[yellow]incomplete[/yellow]"
    console.print(
        f"\n  {len(chain)} link(s) across {info.total_levels} level(s), "
        f"{len(info.principals)} principal(s), {complete}"
    )


@cli.command(name="validate")
@token_options
def validate_command(
    source: BinaryIO,
    token_format: Optional[str],
    as_json: bool,
    max_depth: Optional[int],
) -> None:
    """Validate the proof chain of the token in SOURCE."""
    from ucan_inspect.schemas import serialize_result

    try:
        result = _inspector(max_depth).validate(source.read(), _format_hint(token_format))
    except InspectError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(serialize_result(result))
    else:
        table = Table(title="Validation", show_header=True)
        table.add_column("Level", justify="right")
        table.add_column("CID", style="cyan")
        table.add_column("Valid")
        table.add_column("Issues")
        for link in result.chain:
            issues = "\n".join(_format_issue(issue) for issue in link.issues)
            table.add_row(
                str(link.level),
                escape(link.content_id),
                "[green]yes[/green]" if link.valid else "[red]no[/red]",
                issues,
            )
        console.print(table)

        summary = result.summary
        console.print(
            f"\n  Links: {summary.total_links}  Valid: {summary.valid_links}  "
            f"Invalid: {summary.invalid_links}  Warnings: {summary.warning_count}"
        )
        if result.root_cause is not None:
            cause = result.root_cause
            console.print(
                f"  [red]Root cause:[/red] {cause.kind.value} at level {cause.level}: "
                f"{escape(cause.message)}"
            )
        else:
            console.print("  [green]Chain is valid.[/green]")

    if not result.valid:
        sys.exit(1)


@cli.command(name="analyze")
@token_options
def analyze_command(
    source: BinaryIO,
    token_format: Optional[str],
    as_json: bool,
    max_depth: Optional[int],
) -> None:
    """Show invocation and capability analysis for the token in SOURCE."""
    from ucan_inspect.schemas import capability_analysis_to_model, invocation_to_model

    try:
        analysis = _inspector(max_depth).analyze(source.read(), _format_hint(token_format))
    except InspectError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(
            {
                "invocation": invocation_to_model(analysis.invocation).model_dump(by_alias=True),
                "capabilities": capability_analysis_to_model(analysis.capabilities).model_dump(
                    by_alias=True
                ),
            }
        )
        return

    invocation = analysis.invocation
    caps = analysis.capabilities
    console.print(f"[bold]Task type:[/bold] {invocation.task_type.value}")
    console.print(f"  Invocation:     {'yes' if invocation.is_invocation else 'no'}")
    console.print(f"  Primary action: {escape(invocation.primary_action or '(none)')}")
    console.print(f"  Target:         {escape(invocation.target_resource or '(none)')}")
    console.print(
        f"  Capabilities:   {caps.total_count} "
        f"({caps.invoke_count} invoke, {caps.delegate_count} delegate)"
    )

    table = Table(title="Categories", show_header=True)
    table.add_column("Category", style="cyan")
    table.add_column("Abilities")
    for category, grouped in caps.categories.items():
        table.add_row(category.value, escape(", ".join(cap.ability for cap in grouped)))
    console.print(table)


if __name__ == "__main__":
    cli()
