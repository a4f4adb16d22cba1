# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.cli",
#   "purpose": "Typer CLI: inspect effective settings and issue one-off requests",
#   "sections": [
#     {"id": "show", "name": "show", "anchor": "function-show", "kind": "function"},
#     {"id": "request", "name": "request", "anchor": "function-request", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line entry point ``restkit-http``.

Example:
    $ restkit-http settings show --format json
    $ restkit-http request GET https://api.example.com/v1/users/42
    $ restkit-http request POST https://api.example.com/v1/users -d '{"name": "Ada"}' --bearer $TOKEN
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Mapping, Optional

import typer
from rich.console import Console
from rich.table import Table

from .enums import RequestKind
from .logging_utils import setup_logging
from .repository.json_api import JsonApiRepository
from .response import HttpResponse
from .serialization import NamingPolicy, SerializerOptions
from .settings import get_settings
from .url_builder import UrlBuilder

app = typer.Typer(
    name="restkit-http",
    help="Resilient JSON HTTP client utilities",
    no_args_is_help=True,
)

settings_app = typer.Typer(
    name="settings",
    help="Inspect RESTKIT_* configuration",
    short_help="Settings management (show)",
)
app.add_typer(settings_app, name="settings")

_SENSITIVE_FIELDS = ("password", "token", "key", "secret", "auth")


def _flatten(prefix: str, value: Any, rows: List[Dict[str, Any]]) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{prefix}__{key}" if prefix else str(key), item, rows)
        return
    display = value
    if any(sensitive in prefix.lower() for sensitive in _SENSITIVE_FIELDS):
        display = "***REDACTED***"
    rows.append({"field": prefix, "value": display, "type": type(value).__name__})


@settings_app.command()
def show(
    format_output: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format: table or json",
    ),
) -> None:
    """Display the effective configuration.

    Field names use the ``__`` nesting of the environment variables, so
    ``retry__get__max_attempts`` is set with ``RESTKIT_RETRY__GET__MAX_ATTEMPTS``.
    """
    if format_output not in ("table", "json"):
        typer.echo(f"Unsupported format: {format_output}", err=True)
        raise typer.Exit(2)

    rows: List[Dict[str, Any]] = []
    _flatten("", get_settings().model_dump(mode="json"), rows)

    if format_output == "json":
        typer.echo(json.dumps(rows, indent=2, default=str))
        return

    table = Table(title="HttpRepositorySettings - Effective Configuration")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Type", style="magenta")
    for row in rows:
        table.add_row(row["field"], str(row["value"]), row["type"])
    Console().print(table)


def _parse_headers(values: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like NAME:VALUE, got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def _build_repository(headers: Dict[str, str], bearer: Optional[str]) -> JsonApiRepository:
    token_provider = None
    if bearer:

        async def token_provider() -> Optional[str]:
            return bearer

    # Payloads typed on the command line are sent with their keys untouched
    return JsonApiRepository(
        headers=headers,
        token_provider=token_provider,
        serializer_options=SerializerOptions(naming_policy=NamingPolicy.NONE),
    )


async def _execute(
    repository: JsonApiRepository, kind: RequestKind, url: str, payload: Any
) -> HttpResponse[Any]:
    builder = UrlBuilder(url)
    async with repository:
        if kind is RequestKind.GET:
            return await repository.get(builder, Any, form_content=payload)
        if kind is RequestKind.POST:
            return await repository.post(builder, payload, Any)
        if kind is RequestKind.PUT:
            return await repository.put(builder, payload, Any)
        if kind is RequestKind.PATCH:
            return await repository.patch(builder, payload, Any)
        return await repository.delete(builder, Any)


@app.command()
def request(
    method: str = typer.Argument(..., help="GET, POST, PUT, PATCH, or DELETE"),
    url: str = typer.Argument(..., help="Absolute http(s) URL"),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="JSON payload (query parameters for GET)"
    ),
    header: List[str] = typer.Option([], "--header", "-H", help="Extra header NAME:VALUE"),
    bearer: Optional[str] = typer.Option(None, "--bearer", help="Bearer token"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override logging level"),
) -> None:
    """Issue one request and print the result wrapper as JSON."""
    try:
        kind = RequestKind(method.upper())
    except ValueError:
        raise typer.BadParameter(f"Unsupported method {method!r}", param_hint="METHOD")

    payload: Any = None
    if data is not None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"--data is not valid JSON: {exc}", param_hint="--data")

    settings = get_settings()
    setup_logging(
        level=log_level or settings.logging.level,
        json_file=settings.logging.json_file,
    )

    repository = _build_repository(_parse_headers(header), bearer)
    result = asyncio.run(_execute(repository, kind, url, payload))
    typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
    if not result.is_success:
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
