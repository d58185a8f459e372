"""Split goose-annotated SQL scripts into executable statements.

A script is divided into sections by ``-- +goose Up`` and ``-- +goose Down``
annotations. Only the section matching the requested direction contributes
statements. Statements normally end on a line whose last token (ignoring a
trailing ``--`` comment) ends with a semicolon. Procedural bodies that contain
semicolons are wrapped in ``-- +goose StatementBegin`` /
``-- +goose StatementEnd`` so they are emitted as a single statement.

Semicolons inside string literals are *not* recognised; scripts that need
them at the end of a line must use an explicit statement block.
"""

from __future__ import annotations

import enum
import io
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, TextIO, Union

from .errors import LineTooLongError, MissingDirectionError, ScriptError
from .models import Direction

logger = logging.getLogger(__name__)

DIRECTIVE_PREFIX = "-- +goose "
MAX_LINE_BYTES = 4 * 1024 * 1024

ScriptSource = Union[bytes, str, BinaryIO, TextIO]


class Directive(enum.Enum):
    """Annotations recognised on lines starting with ``-- +goose ``."""

    UP = "Up"
    DOWN = "Down"
    STATEMENT_BEGIN = "StatementBegin"
    STATEMENT_END = "StatementEnd"
    NO_TRANSACTION = "NO TRANSACTION"

    @classmethod
    def parse(cls, line: str) -> Directive | None:
        if not line.startswith(DIRECTIVE_PREFIX):
            return None
        command = line[len(DIRECTIVE_PREFIX) :].strip()
        try:
            return cls(command)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class SplitResult:
    """Statements for one direction plus whether to wrap them in a transaction."""

    statements: list[str]
    use_transaction: bool = True


@dataclass
class SplitState:
    """Per-line state of the splitter."""

    direction: Direction
    direction_active: bool = False
    ignore_semicolons: bool = False
    statement_ended: bool = False
    up_sections: int = 0
    down_sections: int = 0
    use_transaction: bool = True
    buffer: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)

    def apply(self, directive: Directive) -> None:
        if directive is Directive.UP:
            self.direction_active = self.direction is Direction.UP
            self.up_sections += 1
        elif directive is Directive.DOWN:
            self.direction_active = self.direction is Direction.DOWN
            self.down_sections += 1
        elif directive is Directive.STATEMENT_BEGIN:
            if self.direction_active:
                self.ignore_semicolons = True
        elif directive is Directive.STATEMENT_END:
            if self.direction_active:
                self.statement_ended = self.ignore_semicolons
                self.ignore_semicolons = False
        elif directive is Directive.NO_TRANSACTION:
            self.use_transaction = False

    def append(self, line: str) -> None:
        self.buffer.append(line)
        self.buffer.append("\n")

    def flush(self) -> None:
        self.statement_ended = False
        statement = self.pending
        self.buffer.clear()
        if statement.strip():
            self.statements.append(statement)

    @property
    def pending(self) -> str:
        return "".join(self.buffer)


def ends_with_semicolon(line: str) -> bool:
    """Return ``True`` when the line's last token before any ``--`` comment ends with ``;``."""

    previous = ""
    for word in line.split():
        if word.startswith("--"):
            break
        previous = word
    return previous.endswith(";")


def _iter_lines(source: ScriptSource) -> Iterator[str]:
    if isinstance(source, str):
        source = source.encode("utf-8")
    stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source

    number = 0
    while True:
        raw = stream.readline(MAX_LINE_BYTES + 2)
        if not raw:
            return
        number += 1
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        line = raw.removesuffix(b"\n").removesuffix(b"\r")
        if len(line) > MAX_LINE_BYTES:
            msg = f"line {number} exceeds {MAX_LINE_BYTES} bytes"
            raise LineTooLongError(msg)
        try:
            yield line.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"line {number} is not valid UTF-8: {exc}"
            raise ScriptError(msg) from exc


def split_statements(source: ScriptSource, direction: Direction) -> SplitResult:
    """Split a migration script into the statements for ``direction``.

    The whole script is consumed before anything is returned, so a structural
    error is raised before a single statement can run.
    """

    state = SplitState(direction=direction)
    for line in _iter_lines(source):
        directive = Directive.parse(line)
        if directive is not None:
            state.apply(directive)
        elif state.direction_active:
            state.append(line)
        else:
            continue

        if state.statement_ended or (
            directive is None and not state.ignore_semicolons and ends_with_semicolon(line)
        ):
            state.flush()

    if state.ignore_semicolons:
        logger.warning(
            "saw '%sStatementBegin' with no matching '%sStatementEnd'",
            DIRECTIVE_PREFIX,
            DIRECTIVE_PREFIX,
        )

    remaining = state.pending.strip()
    if remaining:
        logger.warning("unexpected unfinished SQL query: %s. Missing a semicolon?", remaining)

    if state.up_sections == 0 and state.down_sections == 0:
        raise MissingDirectionError("no Up/Down annotations found, so no statements were executed")

    return SplitResult(statements=state.statements, use_transaction=state.use_transaction)


__all__ = [
    "DIRECTIVE_PREFIX",
    "Directive",
    "MAX_LINE_BYTES",
    "SplitResult",
    "SplitState",
    "ends_with_semicolon",
    "split_statements",
]
