"""Operator control commands — pause and resume automated replies.

Authorization is either the linked account's own messages, or a shared
secret phrase prefix compared case-insensitively. The phrase is a weak
credential and should be replaced by real operator auth where that matters.

    !pause [minutes]          (from own account)
    <secret> !pause [minutes] (from anyone who knows the phrase)
    <secret>                  toggle
    <secret> <anything else>  dropped
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chatrelay.config import PauseConfig


class CommandAction(Enum):
    pause = auto()
    resume = auto()
    toggle = auto()
    unrecognized = auto()  # secret matched, unknown remainder; never treated as chat


@dataclass(frozen=True, slots=True)
class ControlCommand:
    action: CommandAction
    minutes: int | None = None


def parse_control(text: str, *, from_me: bool, config: PauseConfig) -> ControlCommand | None:
    """Return the authorized control command in ``text``, or None.

    Text starting with the shared secret always yields a command, so the
    phrase never reaches conversation history or the AI.
    """
    stripped = text.strip()
    lower = stripped.lower()
    secret = config.shared_secret.strip().lower()

    authorized_by_secret = bool(secret) and (lower == secret or lower.startswith(secret + " "))
    if authorized_by_secret:
        rest = stripped[len(secret) :].strip()
        if not rest:
            return ControlCommand(CommandAction.toggle)
    elif from_me:
        rest = stripped
    else:
        return None

    command = _parse_verb(rest, config)
    if command is None and authorized_by_secret:
        return ControlCommand(CommandAction.unrecognized)
    return command


def _parse_verb(rest: str, config: PauseConfig) -> ControlCommand | None:
    parts = rest.split()
    if not parts:
        return None
    verb = parts[0].lower()

    if verb == config.resume_command.lower() and len(parts) == 1:
        return ControlCommand(CommandAction.resume)

    if verb == config.pause_command.lower():
        if len(parts) == 1:
            return ControlCommand(CommandAction.pause)
        if len(parts) == 2 and parts[1].isdigit() and int(parts[1]) > 0:
            return ControlCommand(CommandAction.pause, minutes=int(parts[1]))

    return None
