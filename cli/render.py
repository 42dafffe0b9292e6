from __future__ import annotations

from typing import Iterable, Mapping

import typer

from app.schemas import SensorEventRecord


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, object]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_events(uid: str, events: Mapping[str, SensorEventRecord]) -> None:
    echo_heading(f"Sensor events for {uid}")
    echo_key_values([("count", len(events))])
    if not events:
        typer.echo("No events recorded.")
        return
    for key, event in events.items():
        typer.echo(f"  - {key}: value={event.value} time={event.time}")
