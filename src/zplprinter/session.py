"""
TCP Session Handler for ZPL Printers.

Sends label programs over a raw TCP connection (port 9100) using asyncio
streams and collects the printer's replies.

Replies carry no length or correlation id. The session knows how many
lines each query produces (``ZPLCommand.response_lines``) and queues that
expectation as the query is written; the reader drains the queue in order,
reading exactly that many lines per query.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Union

from .commands import ZPLCommand, response_lines, serialize
from .errors import ConnectionError, PrinterError, ResponseError, TransmissionError
from .label import Label

DEFAULT_PORT = 9100


@dataclass(frozen=True)
class PrinterAddress:
    """Network endpoint of a printer."""

    host: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, value: str) -> "PrinterAddress":
        """
        Parse ``host`` or ``host:port``.

        Raises:
            ValueError: If the host is empty or the port is not 1-65535
        """
        host, sep, port = value.strip().rpartition(":")
        if not sep:
            host, port = port, ""
        host = host.strip("[]")
        if not host:
            raise ValueError(f"Missing host in printer address: '{value}'")
        if not sep:
            return cls(host)
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Invalid port in printer address: '{value}'")
        return cls(host, int(port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SENDING = "sending"
    AWAITING_REPLIES = "awaiting_replies"
    IDLE = "idle"


@dataclass
class Reply:
    """Lines read back for one query command."""

    command: ZPLCommand
    expected: int
    lines: list[bytes] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return len(self.lines) >= self.expected


@dataclass
class JobResult:
    """
    Outcome of sending one program.

    Attributes:
        replies: One Reply per query, in the order the queries were sent
        expected: Number of queries that solicited a reply
        bytes_sent: Bytes handed to the connection
        closed: True if the printer closed the connection during the job.
            The replies may still be complete if it hung up after answering
    """

    replies: list[Reply] = field(default_factory=list)
    expected: int = 0
    bytes_sent: int = 0
    closed: bool = False

    @property
    def complete(self) -> bool:
        """True if every query got all of its reply lines."""
        return len(self.replies) == self.expected and all(r.complete for r in self.replies)


class PrinterSession:
    """
    Manages a TCP connection to a ZPL printer.

    One job runs at a time. Writing and reading run as two tasks that are
    joined before ``send`` returns; the first failure on either side
    cancels the other and is raised. Nothing is retried and there is no
    built-in timeout - wrap calls in ``asyncio.wait_for`` if needed.
    """

    ENCODING = "utf-8"

    def __init__(self):
        self.state = SessionState.DISCONNECTED
        self.address: Optional[PrinterAddress] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._expectations: Optional[asyncio.Queue] = None
        self._pending_lines = 0
        self._bytes_sent = 0

    async def __aenter__(self) -> "PrinterSession":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def is_connected(self) -> bool:
        """False once closed locally or after the printer hung up."""
        if self.state is SessionState.DISCONNECTED:
            return False
        return self._reader is None or not self._reader.at_eof()

    @property
    def pending_lines(self) -> int:
        """Reply lines expected but not yet read."""
        return self._pending_lines

    async def connect(self, address: PrinterAddress):
        """
        Open a connection to the printer.

        Raises:
            ConnectionError: If already connected or the connection fails
        """
        await self._close_if_hung_up()
        if self.is_connected:
            raise ConnectionError(f"Already connected to {self.address}")

        try:
            self._reader, self._writer = await asyncio.open_connection(
                address.host, address.port
            )
        except OSError as e:
            raise ConnectionError(f"Failed to connect to {address}: {e}") from e

        self.address = address
        self.state = SessionState.CONNECTED

    async def close(self):
        """Close the connection. Safe to call when already closed."""
        writer = self._writer
        self._drop()
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # The peer may already have reset the connection
            pass

    async def _close_if_hung_up(self):
        # Only between jobs; a running job sees the hang-up itself
        if self.state in (SessionState.CONNECTED, SessionState.IDLE) and not self.is_connected:
            await self.close()

    def _drop(self):
        self.state = SessionState.DISCONNECTED
        self._reader = None
        self._writer = None
        self._pending_lines = 0

    async def send(
        self,
        program: Union[Label, Iterable[ZPLCommand]],
        line_by_line: bool = True,
    ) -> JobResult:
        """
        Send a program and collect the replies to its queries.

        Args:
            program: Label or sequence of commands to send
            line_by_line: Write and flush one command at a time (default),
                or write the whole program as a single payload

        Returns:
            JobResult with the replies. If the printer closed the
            connection, ``closed`` is set and the session is disconnected.

        Raises:
            ConnectionError: If not connected, or reading fails
            TransmissionError: If writing fails; ``bytes_sent`` tells how
                much of the program went out
        """
        await self._close_if_hung_up()
        if not self.is_connected or self._writer is None:
            raise ConnectionError("Not connected to printer")
        if self.state in (SessionState.SENDING, SessionState.AWAITING_REPLIES):
            raise PrinterError("A job is already in progress")

        commands = list(program)
        result = JobResult(expected=sum(1 for c in commands if response_lines(c) > 0))
        self._expectations = asyncio.Queue()
        self._pending_lines = 0
        self._bytes_sent = 0
        self.state = SessionState.SENDING

        write_task = asyncio.create_task(self._write(commands, line_by_line))
        read_task = asyncio.create_task(self._read(result.replies))
        try:
            result.closed = await self._join(write_task, read_task)
        except BaseException:
            # A failed or cancelled job leaves the printer mid-format
            if self._writer is not None:
                self._writer.close()
            self._drop()
            raise
        finally:
            result.bytes_sent = self._bytes_sent
            for task in (write_task, read_task):
                if not task.done():
                    task.cancel()

        if result.closed:
            await self.close()
        else:
            self.state = SessionState.IDLE
        return result

    async def _join(self, write_task: asyncio.Task, read_task: asyncio.Task) -> bool:
        """Wait for both halves, propagating the first failure."""
        pending = {write_task, read_task}
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                error = task.exception()
                if error is not None:
                    await self._cancel(pending)
                    raise error
            if read_task in done and read_task.result():
                # Printer hung up, nothing more can be written or read
                await self._cancel(pending)
                return True
            if write_task in done and pending:
                self.state = SessionState.AWAITING_REPLIES
        return read_task.result()

    @staticmethod
    async def _cancel(tasks):
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _expect(self, command: ZPLCommand):
        lines = response_lines(command)
        if lines > 0:
            self._pending_lines += lines
            self._expectations.put_nowait((command, lines))

    async def _write(self, commands: list[ZPLCommand], line_by_line: bool):
        """Outbound half: write the program, queueing expectations as sent."""
        writer = self._writer
        try:
            if line_by_line:
                for command in commands:
                    for line in serialize(command).split("\n"):
                        data = (line + "\n").encode(self.ENCODING)
                        writer.write(data)
                        await writer.drain()
                        self._bytes_sent += len(data)
                    self._expect(command)
            else:
                payload = "\n".join(serialize(c) for c in commands) + "\n"
                data = payload.encode(self.ENCODING)
                writer.write(data)
                await writer.drain()
                self._bytes_sent += len(data)
                for command in commands:
                    self._expect(command)
        except OSError as e:
            raise TransmissionError(
                f"Write failed after {self._bytes_sent} bytes: {e}",
                bytes_sent=self._bytes_sent,
            ) from e
        finally:
            self._expectations.put_nowait(None)

    async def _read(self, replies: list[Reply]) -> bool:
        """
        Inbound half: drain expected reply lines in FIFO order.

        Returns:
            True if the printer closed the connection, either before all
            expected lines were read or already by the time the writer
            finished; False otherwise
        """
        reader = self._reader
        while True:
            item = await self._expectations.get()
            if item is None:
                return reader.at_eof()

            command, count = item
            reply = Reply(command, count)
            replies.append(reply)
            while not reply.complete:
                try:
                    line = await reader.readline()
                except OSError as e:
                    raise ConnectionError(f"Connection lost while reading replies: {e}") from e
                except ValueError as e:
                    raise ResponseError(f"Reply line too long: {e}") from e
                if not line:
                    return True
                reply.lines.append(line)
                self._pending_lines -= 1
                if not line.endswith(b"\n"):
                    # Partial line followed by end of stream
                    return True
