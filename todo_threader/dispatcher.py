from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .command import Message
from .transport import Transport, TransportError

_logger = logging.getLogger(__name__)

RETRIES: int = 5
ACK_SIZE: int = 1


class DispatchError(TransportError):
    """
    A mutating command was not acknowledged.
    Attributes:
        stage: "write" or "read", where the exchange broke off
    The device may still have applied the command if the failure happened
    while reading the ack.
    """

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.__cause__ = cause


@dataclass
class ProbeResult:
    """Outcome of a best-effort exchange. Write and read are reported separately."""
    written: Optional[int] = None
    ack: Optional[bytes] = None
    write_error: Optional[TransportError] = None
    read_error: Optional[TransportError] = None

    @property
    def ok(self) -> bool:
        return self.write_error is None and self.read_error is None


class Dispatcher:
    """
    Sends commands to the display and waits for the one byte acknowledgment.

    `test` and `raw` are diagnostic probes: they log what happened and never
    raise transport errors. `next`, `swap`, `following` and `add` change task
    state on the device and raise DispatchError on failure so the caller can
    retry them with run_with_retries.
    """

    def __init__(self, transport: Transport, *, encoding: str = "utf-8") -> None:
        self._transport = transport
        self.encoding = encoding

    # --- Diagnostic probes ---
    def test(self) -> ProbeResult:
        """Ping the device and report write and read outcomes independently."""
        _logger.debug("Starting communication test...")
        _logger.debug("Sending data to device...")
        result = self._probe(Message.test().to_bytes(self.encoding))
        if result.write_error is None:
            _logger.debug("Successfully sent %d bytes to the device", result.written)
            _logger.info("Writing . . . . . [ OK ]")
        else:
            _logger.info("Failed to send data to the device! Reason: %s", result.write_error)
            _logger.error("Writing . . . . . [ FAILED ]")

        _logger.debug("Reading data from device...")
        if result.read_error is None:
            _logger.debug("Successfully read %d bytes from the device", len(result.ack or b""))
            _logger.info("Reading . . . . . [ OK ]")
        else:
            _logger.info("Failed to read data from the device! Reason: %s", result.read_error)
            _logger.error("Reading . . . . . [ FAILED ]")
        _logger.debug("Communication test finished")
        return result

    def raw(self, payload: bytes) -> ProbeResult:
        """Send `payload` verbatim and log whatever comes back."""
        result = self._probe(Message.raw(payload).to_bytes(self.encoding))
        if result.write_error is None:
            _logger.info("Successfully sent %d bytes to the device", result.written)
        else:
            _logger.error("Failed to send data to the device! Reason: %s", result.write_error)
        if result.read_error is None:
            _logger.info("Got a response of %d bytes from device: %r", len(result.ack or b""), result.ack)
        else:
            _logger.error("Failed to read data from device! Reason: %s", result.read_error)
        return result

    # --- Mutating commands ---
    def next(self) -> bytes:
        """Mark the current task as done."""
        return self.send(Message.next())

    def swap(self) -> bytes:
        """Swap the current task with the next one."""
        return self.send(Message.swap())

    def following(self, task: str, color: str) -> bytes:
        """Schedule `task` as the next one."""
        return self.send(Message.following(task, color))

    def add(self, task: str, color: str) -> bytes:
        """Schedule `task` at the end."""
        return self.send(Message.add(task, color))

    def send(self, message: Message) -> bytes:
        """
        Write a message and wait for its ack.
        Args:
            message (Message): Command to send
        Returns:
            bytes: The ack byte (content is not inspected)
        Raises:
            DispatchError: If either the write or the ack read failed
        """
        data = message.to_bytes(self.encoding)
        _logger.debug("Sending %r", data)
        try:
            self._transport.write(data)
        except TransportError as ex:
            raise DispatchError("write", ex) from ex
        try:
            return self._transport.read(ACK_SIZE)
        except TransportError as ex:
            raise DispatchError("read", ex) from ex

    def _probe(self, data: bytes) -> ProbeResult:
        result = ProbeResult()
        try:
            result.written = self._transport.write(data)
        except TransportError as ex:
            result.write_error = ex
        # Read even after a failed write; the two are reported separately
        try:
            result.ack = self._transport.read(ACK_SIZE)
        except TransportError as ex:
            result.read_error = ex
        return result


def run_with_retries(operation: Callable[[], object], retries: int = RETRIES) -> bool:
    """
    Call `operation` until it succeeds, at most `retries` times.
    Failures are retried immediately, without delay.
    Args:
        operation: Zero-argument callable that raises TransportError on failure
        retries (int): Maximum number of attempts
    Returns:
        bool: True on success, False once every attempt has failed
    """
    for attempt in range(1, retries + 1):
        try:
            operation()
        except TransportError as ex:
            _logger.warning("Attempt %d/%d failed to communicate! Reason: %s", attempt, retries, ex)
            if attempt < retries:
                _logger.info("Retrying... %d/%d", attempt, retries)
            continue
        _logger.info("Success!")
        return True
    _logger.error("Giving up after %d attempts", retries)
    return False
