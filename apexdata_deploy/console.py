"""
console
-------

사용자에게 보여주는 상태 라인([INFO]/[WARN]/[ERROR]/[SUCCESS]) 출력 헬퍼.
로깅과는 별개로 항상 출력된다.
"""

from __future__ import annotations

import click


def _line(tag: str, color: str, message: str, *, err: bool = False) -> None:
    click.echo(click.style(f"[{tag}]", fg=color, bold=color == "yellow") + f" {message}", err=err)


def info(message: str) -> None:
    _line("INFO", "blue", message)


def warn(message: str) -> None:
    _line("WARN", "yellow", message)


def error(message: str) -> None:
    _line("ERROR", "red", message, err=True)


def success(message: str) -> None:
    _line("SUCCESS", "green", message)


def heading(text: str) -> None:
    click.secho(text, fg="blue")
