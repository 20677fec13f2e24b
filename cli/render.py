from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_hello(payload: Dict[str, Any]) -> None:
    echo_heading(str(payload.get("message", "")))
    items = payload.get("items") or []
    echo_key_values((item.get("key"), item.get("value")) for item in items)


def render_users(users: List[Dict[str, Any]]) -> None:
    echo_heading("Users")
    if not users:
        typer.echo("No users found.")
        return
    for user in users:
        typer.echo(f"  - {user.get('id')}: {user.get('name')} <{user.get('email')}>")
