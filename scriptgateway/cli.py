# -*- coding: utf-8 -*-
"""scriptgateway CLI ─ vet scripts, inspect limits and run scripts from a shell

Copyright 2026
SPDX-License-Identifier: Apache-2.0

This module is exposed as a **console-script** via:

    [project.scripts]
    scriptgateway = "scriptgateway.cli:main"

Features
─────────
* validate: Static scan of a script file
* limits: Resource ceiling for a language, optionally narrowed
* run: Dispatch a script and stream its frames until it finishes

Typical usage
─────────────
```console
$ scriptgateway validate analysis.py
$ scriptgateway limits bash --override timeoutSeconds=30
$ scriptgateway run s1 --param n=3 --simulate
```
"""

# Standard
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

# Third-Party
import orjson
import typer
from typing_extensions import Annotated

# First-Party
from scriptgateway.errors import GatewayError
from scriptgateway.gateway import ExecutionGateway
from scriptgateway.models import ExecutionStatus, MessageType, TERMINAL_STATUSES
from scriptgateway.services.notification_service import Notification
from scriptgateway.services.resource_limits import ResourceLimitResolver
from scriptgateway.services.static_validator import StaticValidator

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".r": "r",
    ".jl": "julia",
    ".js": "javascript",
    ".sh": "bash",
}
DEFAULT_RUN_TIMEOUT = 120.0

app = typer.Typer(help="Script execution gateway tools.", add_completion=False)


def _parse_pairs(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """Parse ``key=value`` options; values are JSON when they parse as JSON.

    Args:
        pairs: Raw option values.

    Returns:
        Dict[str, Any]: Parsed mapping.

    Raises:
        typer.BadParameter: If an item has no ``=``.

    Examples:
        >>> _parse_pairs(["n=3", "name=sample", "flags=[1,2]"])
        {'n': 3, 'name': 'sample', 'flags': [1, 2]}
    """
    parsed: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        try:
            parsed[key] = orjson.loads(value)
        except orjson.JSONDecodeError:
            parsed[key] = value
    return parsed


def _build_gateway(backend_url: Optional[str], simulate: bool) -> ExecutionGateway:
    return ExecutionGateway(backend_url=backend_url, enable_fallback=True if simulate else None)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@app.command(help="Statically scan a script for disallowed operations.")
def validate(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="Script file to scan.")],
    language: Annotated[Optional[str], typer.Option("--language", "-l", help="Script language; inferred from the file suffix when omitted.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format.")] = False,
):
    language = language or LANGUAGE_BY_SUFFIX.get(path.suffix.lower(), "python")
    result = StaticValidator().validate(path.read_text(encoding="utf-8"), language)

    if json_output:
        typer.echo(orjson.dumps(result.to_wire(), option=orjson.OPT_INDENT_2).decode())
    elif result.valid:
        typer.echo(f"{path.name}: no issues found ({language})")
    else:
        typer.echo(f"{path.name}: {len(result.issues)} issue(s) found ({language})")
        for issue in result.issues:
            typer.echo(f"  - {issue}")

    if not result.valid:
        raise typer.Exit(1)


@app.command(help="Show the resource ceiling applied to a language.")
def limits(
    language: Annotated[str, typer.Argument(help="Script language.")],
    heavy: Annotated[bool, typer.Option("--heavy", help="Show the heavy (NGS) workload profile.")] = False,
    override: Annotated[Optional[List[str]], typer.Option("--override", "-o", help="Narrow a limit, e.g. timeoutSeconds=30.")] = None,
):
    resolved = ResourceLimitResolver().resolve(language, heavy, _parse_pairs(override))
    typer.echo(orjson.dumps(resolved, option=orjson.OPT_INDENT_2).decode())


def _print_frame(frame: Dict[str, Any]) -> None:
    frame_type = frame.get("type")
    if frame_type == MessageType.OUTPUT.value:
        typer.echo(frame["content"], nl=False)
    elif frame_type == MessageType.LOG.value:
        typer.echo(f"[{frame['level']}] {frame['message']}")
    elif frame_type == MessageType.EXECUTION_STATUS.value:
        typer.echo(f"Status: {frame['status']}")
    else:
        typer.echo(orjson.dumps(frame).decode())


def _print_notification(notification: Notification) -> None:
    typer.echo(f"[{notification.level.value}] {notification.message}", err=True)


async def _run(script_id: str, parameters: Dict[str, Any], language: Optional[str], script_class: str, backend_url: Optional[str], simulate: bool, timeout: float) -> str:
    gateway = _build_gateway(backend_url, simulate)
    gateway.notifier.add_sink(_print_notification)
    done = asyncio.Event()
    final_status: Dict[str, str] = {}
    terminal = {status.value for status in TERMINAL_STATUSES}

    def on_frame(frame: Dict[str, Any]) -> None:
        _print_frame(frame)
        if frame.get("type") == MessageType.EXECUTION_STATUS.value and frame.get("status") in terminal:
            final_status["status"] = frame["status"]
            done.set()

    try:
        if not simulate:
            await gateway.connect()
        gateway.subscribe(script_id, on_frame)
        response = await gateway.run(script_id, parameters, language=language, script_class=script_class)
        typer.echo(f"Started {response.execution_id}{' (local simulation)' if response.fallback else ''}", err=True)
        try:
            await asyncio.wait_for(done.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            typer.echo(f"Timed out after {timeout}s waiting for script {script_id}", err=True)
            return "timeout"
        return final_status["status"]
    finally:
        await gateway.close()


@app.command(help="Dispatch a script and stream its output until it finishes.")
def run(
    script_id: Annotated[str, typer.Argument(help="Script identity.")],
    param: Annotated[Optional[List[str]], typer.Option("--param", "-p", help="Run parameter as key=value.")] = None,
    language: Annotated[Optional[str], typer.Option("--language", "-l", help="Language used when the catalog does not know the script.")] = None,
    script_class: Annotated[str, typer.Option("--class", help="Admission class: default, lightweight or ngs.")] = "default",
    backend_url: Annotated[Optional[str], typer.Option("--backend-url", help="Backend websocket endpoint.")] = None,
    simulate: Annotated[bool, typer.Option("--simulate", help="Run on the local simulator without connecting.")] = False,
    timeout: Annotated[float, typer.Option("--timeout", help="Seconds to wait for a final status.")] = DEFAULT_RUN_TIMEOUT,
):
    try:
        status = asyncio.run(_run(script_id, _parse_pairs(param), language, script_class, backend_url, simulate, timeout))
    except (GatewayError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if status != ExecutionStatus.COMPLETED.value:
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the ``scriptgateway`` console script."""
    app()


if __name__ == "__main__":
    main()
