from __future__ import annotations

import click
from flask import Flask

from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.cli.command("expire-makeup-deadlines")
    def expire_makeup_deadlines() -> None:
        """Expire absence makeup windows that have passed the 7-day deadline."""
        count = container.absence_service.expire_deadlines()
        click.echo(f"Expired {count} absence makeup deadline(s).")
