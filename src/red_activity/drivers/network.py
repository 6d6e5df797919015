import asyncio
import socket
from typing import Any, Optional, Protocol

import structlog

from ..core.deadline import Deadline, within
from ..core.errors import DialError, InvalidPayloadError, ListenError, TransmitError
from ..core.models import ActivityKind, CorrelationContext, TransmitResult
from ..utils.logging import log_outcome

PROTOCOL = "tcp"
LOOPBACK_HOST = "127.0.0.1"
CHUNK_SIZE = 32 * 1024


class Sink(Protocol):
    def write(self, data: bytes) -> Any: ...


def format_address(address: Any) -> str:
    host, port = address[0], address[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"address {address!r} is not in host:port form")
    return host.strip("[]"), int(port)


class LoopbackTransport:
    """
    Transmits payloads over TCP.

    localhost_transmit binds its own single-use loopback listener so that a
    transmission always has a reachable destination.
    """

    def __init__(self, context: CorrelationContext, logger: Optional[Any] = None):
        self.context = context
        self.log = (logger or structlog.get_logger(__name__)).bind(
            **context.log_fields(), activity=ActivityKind.NETWORK.value
        )

    async def connect_and_transmit(
        self, address: str, payload: bytes, deadline: Optional[Deadline] = None
    ) -> TransmitResult:
        """Connect to address ("host:port") and send all of payload"""
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidPayloadError(f"invalid payload of type {type(payload).__name__}")

        dial_log = self.log.bind(
            destination_address=address, protocol=PROTOCOL, data_sent_bytes=0
        )
        try:
            host, port = parse_address(address)
        except ValueError as e:
            log_outcome(dial_log, e, "data transmission")
            raise DialError(str(e)) from e

        loop = asyncio.get_running_loop()
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.setblocking(False)
            try:
                await within(deadline, loop.sock_connect(sock, (host, port)))
            except (OSError, asyncio.TimeoutError) as e:
                log_outcome(dial_log, e, "data transmission")
                raise DialError(f"unable to connect to address {address!r}: {e}") from e

            source = format_address(sock.getsockname())
            destination = format_address(sock.getpeername())
            sent = 0
            error: Optional[BaseException] = None
            view = memoryview(payload).cast("B")
            try:
                for offset in range(0, len(view), CHUNK_SIZE):
                    chunk = view[offset : offset + CHUNK_SIZE]
                    await within(deadline, loop.sock_sendall(sock, chunk))
                    sent += len(chunk)
                sock.shutdown(socket.SHUT_WR)
            except (OSError, asyncio.TimeoutError) as e:
                error = e

            log = self.log.bind(
                destination_address=destination,
                source_address=source,
                protocol=PROTOCOL,
                data_sent_bytes=sent,
            )
            log_outcome(log, error, "data transmission")
            if error is not None:
                raise TransmitError(f"error transmitting data: {error}") from error

        return TransmitResult(
            protocol=PROTOCOL,
            source_address=source,
            destination_address=destination,
            bytes_sent=sent,
        )

    async def localhost_transmit(
        self,
        payload: bytes,
        sink: Optional[Sink] = None,
        deadline: Optional[Deadline] = None,
    ) -> TransmitResult:
        """
        Send payload to a loopback listener bound for this call only.

        The listener accepts exactly one connection and copies everything it
        reads into sink. Sending and receiving run concurrently and are both
        finished before this returns. If both fail the sending error is
        raised; the receiving error has already been logged.

        Raises:
            ListenError: No loopback port could be bound.
            DialError: The client could not connect.
            TransmitError: Sending or receiving failed.
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidPayloadError(f"invalid payload of type {type(payload).__name__}")

        with self._listen() as listener:
            address = format_address(listener.getsockname())
            receiver = asyncio.ensure_future(self._receive_one(listener, sink, deadline))
            try:
                result = await self.connect_and_transmit(address, payload, deadline=deadline)
            except TransmitError:
                # The client side is closed, so the receiver sees EOF or a reset
                await asyncio.gather(receiver, return_exceptions=True)
                raise
            except BaseException:
                receiver.cancel()
                await asyncio.gather(receiver, return_exceptions=True)
                raise
            received = await receiver

        return result.model_copy(update={"bytes_received": received})

    def _listen(self) -> socket.socket:
        try:
            listener = socket.create_server((LOOPBACK_HOST, 0), backlog=1)
        except OSError as e:
            log_outcome(self.log.bind(protocol=PROTOCOL), e, "listen")
            raise ListenError(f"unable to listen on {LOOPBACK_HOST}: {e}") from e
        listener.setblocking(False)
        return listener

    async def _receive_one(
        self, listener: socket.socket, sink: Optional[Sink], deadline: Optional[Deadline]
    ) -> int:
        loop = asyncio.get_running_loop()
        log = self.log.bind(
            listen_address=format_address(listener.getsockname()), protocol=PROTOCOL
        )
        try:
            conn, _ = await within(deadline, loop.sock_accept(listener))
        except (OSError, asyncio.TimeoutError) as e:
            log_outcome(log, e, "data reception")
            raise TransmitError(f"error accepting connection: {e}") from e
        listener.close()

        received = 0
        with conn:
            try:
                while True:
                    data = await within(deadline, loop.sock_recv(conn, CHUNK_SIZE))
                    if not data:
                        break
                    if sink is not None:
                        sink.write(data)
                    received += len(data)
            except Exception as e:  # sink is caller supplied and may raise anything
                log_outcome(log.bind(data_received_bytes=received), e, "data reception")
                raise TransmitError(f"error receiving data: {e}") from e
        return received
