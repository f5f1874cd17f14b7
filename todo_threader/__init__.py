"""todo-threader package.

Relay task commands to a serial task display using pyserial and a small
ASCII protocol acknowledged with a single byte.
"""

__version__ = "0.1.0"

__all__ = [
    "Command",
    "Message",
    "Dispatcher",
    "DispatchError",
    "run_with_retries",
    "SerialTransport",
    "Transport",
    "TransportError",
    "random_color",
]

from .command import Command, Message, random_color
from .dispatcher import DispatchError, Dispatcher, run_with_retries
from .transport import SerialTransport, Transport, TransportError
