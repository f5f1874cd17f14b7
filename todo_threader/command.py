from __future__ import annotations

import random
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

COLOR_MAX: int = 0xFFFFFF

_HEX_COLOR = re.compile(r"^#?[0-9A-Fa-f]{6}$")


class Command(Enum):
    """
    Command types for the task display protocol.
    Test   = "ping": Probe the device
    Raw    = "":     Payload sent verbatim
    Next   = "NXT":  Mark the current task as done
    Swap   = "SWP":  Swap the current task with the next one
    Follow = "FLW":  Schedule a task as the next one
    Add    = "ADD":  Schedule a task at the end
    """
    Test = "ping"
    Raw = ""
    Next = "NXT"
    Swap = "SWP"
    Follow = "FLW"
    Add = "ADD"

    @property
    def prefix(self) -> str:
        return self.value

    @property
    def mutating(self) -> bool:
        """True for commands that change task state on the device."""
        return self not in (Command.Test, Command.Raw)

    @property
    def takes_task(self) -> bool:
        return self in (Command.Follow, Command.Add)


def strip_color(color: str) -> str:
    """Drop a single leading '#'. The value is otherwise passed through untouched."""
    return color[1:] if color.startswith("#") else color


def is_hex_color(color: str) -> bool:
    return bool(_HEX_COLOR.match(color))


def random_color(rng: Optional[random.Random] = None) -> str:
    """
    Pick a uniformly random color.
    Args:
        rng (random.Random, optional): Source of randomness
    Returns:
        str: '#' followed by six uppercase hex digits
    """
    value = (rng or random).randint(0, COLOR_MAX)
    return f"#{value:06X}"


@dataclass(frozen=True)
class Message:
    """
    A single command on its way to the device.
    Fields:
        command: Command
        task: task text (Follow/Add only)
        color: task color, with or without '#' (Follow/Add only)
        payload: raw bytes (Raw only)
    """
    command: Command
    task: Optional[str] = None
    color: Optional[str] = None
    payload: bytes = b""

    @classmethod
    def test(cls) -> "Message":
        return cls(Command.Test)

    @classmethod
    def raw(cls, payload: bytes) -> "Message":
        return cls(Command.Raw, payload=bytes(payload))

    @classmethod
    def next(cls) -> "Message":
        return cls(Command.Next)

    @classmethod
    def swap(cls) -> "Message":
        return cls(Command.Swap)

    @classmethod
    def following(cls, task: str, color: str) -> "Message":
        return cls(Command.Follow, task=task, color=color)

    @classmethod
    def add(cls, task: str, color: str) -> "Message":
        return cls(Command.Add, task=task, color=color)

    def to_bytes(self, encoding: str = "utf-8") -> bytes:
        """
        Serialize the message to its wire form.
        Args:
            encoding (str): Text encoding for the command string
        Returns:
            bytes: Bytes to write to the device
        Raises:
            ValueError: If a task command lacks its task or color, or the
                text cannot be encoded
        """
        if self.command is Command.Raw:
            return self.payload
        if not self.command.takes_task:
            return self.command.prefix.encode(encoding)
        if self.task is None or self.color is None:
            raise ValueError(f"{self.command.name} requires a task and a color")
        text = f"{self.command.prefix}{self.task};{strip_color(self.color)}"
        # UnicodeEncodeError is a ValueError
        return text.encode(encoding)
