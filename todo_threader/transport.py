from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol, Union

import serial

_logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE: int = 9600
DEFAULT_TIMEOUT: float = 0.5


class TransportError(OSError):
    """I/O failure on the link. The underlying exception is kept as __cause__."""


class TransportTimeout(TransportError):
    """A read or write did not complete before the configured timeout."""


class FlowControl(str, Enum):
    Software = "software"
    Disabled = "none"


class Transport(Protocol):
    """Anything the dispatcher can write commands to and read acks from."""

    def write(self, data: bytes) -> int:
        ...

    def read(self, size: int) -> bytes:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "Transport":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...


class SerialTransport:
    """
    pyserial backed transport.
    Features:
        - Read and write bounded by the same timeout
        - Optional XON/XOFF software flow control
        - DTR/RTS held low across open so the board is not reset
        - Timeouts and port errors raised as TransportError
    """

    _serial: serial.Serial

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        flow_control: Union[FlowControl, str] = FlowControl.Software,
        deassert_lines: bool = True,
        **serial_kwargs,
    ) -> None:
        """
        Open the serial port.
        Args:
            port (str): Serial port name
            baudrate (int): Baud rate
            timeout (float): Read and write timeout in seconds
            flow_control (FlowControl or str): "software" or "none"
            deassert_lines (bool): Drive DTR and RTS low before opening
            serial_kwargs: Additional serial.Serial arguments
        Raises:
            TransportError: If the port cannot be configured or opened
            ValueError: If flow_control is not a known mode
        """
        flow = FlowControl(flow_control)
        self.port = port
        self.timeout = timeout
        try:
            # Configure before open() so the line state is applied on open
            self._serial = serial.Serial(
                baudrate=baudrate,
                timeout=timeout,
                write_timeout=timeout,
                xonxoff=flow is FlowControl.Software,
                **serial_kwargs,
            )
            if deassert_lines:
                self._serial.dtr = False
                self._serial.rts = False
            self._serial.port = port
            self._serial.open()
        except (serial.SerialException, ValueError) as ex:
            raise TransportError(f"cannot open {port}: {ex}") from ex
        _logger.debug("Opened %s at %d baud (timeout %.3fs, flow control %s)",
                      port, baudrate, timeout, flow.value)

    def close(self) -> None:
        """
        Close the serial port. Safe to call more than once.
        """
        if self._serial.is_open:
            self._serial.close()
            _logger.debug("Closed %s", self.port)

    def __enter__(self) -> "SerialTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, data: bytes) -> int:
        """
        Write bytes to the serial port.
        Args:
            data (bytes): Data to send
        Returns:
            int: Number of bytes written
        Raises:
            TransportTimeout: If the write timed out
            TransportError: On any other port failure
        """
        try:
            written = self._serial.write(data)
            self._serial.flush()
        except serial.SerialTimeoutException as ex:
            raise TransportTimeout(f"write to {self.port} timed out") from ex
        except serial.SerialException as ex:
            raise TransportError(f"write to {self.port} failed: {ex}") from ex
        return written if written is not None else len(data)

    def read(self, size: int) -> bytes:
        """
        Read exactly `size` bytes.
        Args:
            size (int): Number of bytes expected
        Returns:
            bytes: The bytes read
        Raises:
            TransportTimeout: If fewer than `size` bytes arrived in time
            TransportError: On any other port failure
        """
        try:
            data = self._serial.read(size)
        except serial.SerialException as ex:
            raise TransportError(f"read from {self.port} failed: {ex}") from ex
        if len(data) < size:
            raise TransportTimeout(
                f"read from {self.port} timed out after {self.timeout:.3f}s "
                f"({len(data)}/{size} bytes)"
            )
        return data
