"""Tests for the TCP session protocol."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from zplprinter.commands import (
    End,
    HostIndication,
    HostRamStatus,
    HostStatusReturn,
    LabelSetup,
    Raw,
    SetDarkness,
    Start,
)
from zplprinter.errors import ConnectionError, PrinterError, TransmissionError
from zplprinter.label import Label
from zplprinter.session import (
    DEFAULT_PORT,
    JobResult,
    PrinterAddress,
    PrinterSession,
    Reply,
    SessionState,
)

HS_REPLY = (
    b"\x02030,0,0,0384,000,0,0,0,000,0,0,0\x03\r\n"
    b"\x02001,0,0,0,0,2,4,0,00000000,1,000\x03\r\n"
    b"\x021234,0\x03\r\n"
)
HI_REPLY = b"\x02ZD420-300dpi,V84.20.21Z,12,8176KB\x03\r\n"
HM_REPLY = b"\x021024,0780,0700\x03\r\n"


async def _wait_for_hang_up(session, timeout=2.0):
    """Wait until the session notices the printer closed the connection."""

    async def _poll():
        while session.is_connected:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


class TestPrinterAddress:
    """Test address parsing."""

    def test_host_only(self):
        assert PrinterAddress.parse("192.168.1.39") == PrinterAddress("192.168.1.39", DEFAULT_PORT)

    def test_host_and_port(self):
        assert PrinterAddress.parse("printer.local:6101") == PrinterAddress("printer.local", 6101)

    def test_bracketed_ipv6(self):
        assert PrinterAddress.parse("[::1]:9100") == PrinterAddress("::1", 9100)

    @pytest.mark.parametrize("value", ["", ":9100", "host:", "host:abc", "host:0", "host:70000"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            PrinterAddress.parse(value)

    def test_str(self):
        assert str(PrinterAddress("10.0.0.5")) == "10.0.0.5:9100"


class TestJobResult:
    """Test reply bookkeeping."""

    def test_complete_when_all_replies_full(self):
        reply = Reply(HostIndication(), 1, [b"x\r\n"])
        assert JobResult(replies=[reply], expected=1).complete

    def test_incomplete_with_partial_reply(self):
        reply = Reply(HostStatusReturn(), 3, [b"a\r\n"])
        assert not reply.complete
        assert not JobResult(replies=[reply], expected=1).complete

    def test_incomplete_with_missing_reply(self):
        assert not JobResult(replies=[], expected=1).complete

    def test_complete_without_queries(self):
        assert JobResult().complete


class TestSessionState:
    """Test connection state transitions."""

    @pytest.mark.asyncio
    async def test_connect_and_close(self, fake_printer):
        _, address = await fake_printer()
        session = PrinterSession()
        assert session.state is SessionState.DISCONNECTED

        await session.connect(address)
        assert session.state is SessionState.CONNECTED
        assert session.is_connected
        assert session.address == address

        await session.close()
        assert session.state is SessionState.DISCONNECTED
        assert not session.is_connected

    @pytest.mark.asyncio
    async def test_close_twice(self, fake_printer):
        _, address = await fake_printer()
        session = PrinterSession()
        await session.connect(address)
        await session.close()
        await session.close()
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, fake_printer):
        _, address = await fake_printer()
        async with PrinterSession() as session:
            await session.connect(address)
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        # Bind then release a port so nothing listens on it
        server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()

        session = PrinterSession()
        with pytest.raises(ConnectionError, match="Failed to connect"):
            await session.connect(PrinterAddress("127.0.0.1", port))
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_connect_twice(self, fake_printer):
        _, address = await fake_printer()
        session = PrinterSession()
        await session.connect(address)
        try:
            with pytest.raises(ConnectionError, match="Already connected"):
                await session.connect(address)
        finally:
            await session.close()

    @pytest.mark.asyncio
    async def test_send_when_disconnected(self):
        session = PrinterSession()
        with pytest.raises(ConnectionError, match="Not connected"):
            await session.send([Start(), End()])

    @pytest.mark.asyncio
    async def test_send_while_busy(self, fake_printer):
        _, address = await fake_printer()
        session = PrinterSession()
        await session.connect(address)
        session.state = SessionState.SENDING
        try:
            with pytest.raises(PrinterError, match="already in progress"):
                await session.send([Start(), End()])
        finally:
            await session.close()


class TestSend:
    """Test program transmission."""

    @pytest.mark.asyncio
    async def test_program_without_queries(self, fake_printer):
        printer, address = await fake_printer()
        async with PrinterSession() as session:
            await session.connect(address)
            result = await session.send(Label([Start(), SetDarkness(15), End()]))

            assert result.replies == []
            assert result.complete
            assert not result.closed
            assert result.bytes_sent == len(b"^XA\n~SD15\n^XZ\n")
            assert session.state is SessionState.IDLE

            await printer.wait_for_lines(3)
        assert printer.received == ["^XA", "~SD15", "^XZ"]

    @pytest.mark.asyncio
    async def test_two_line_command_sent_as_two_lines(self, fake_printer):
        printer, address = await fake_printer()
        async with PrinterSession() as session:
            await session.connect(address)
            await session.send([Start(), LabelSetup(57, 32, 12), End()])
            await printer.wait_for_lines(4)
        assert printer.received == ["^XA", "^PW684", "^LL0384", "^XZ"]

    @pytest.mark.asyncio
    async def test_single_payload(self, fake_printer):
        printer, address = await fake_printer({"~HS": HS_REPLY})
        async with PrinterSession() as session:
            await session.connect(address)
            result = await session.send([Start(), HostStatusReturn(), End()], line_by_line=False)

            assert result.complete
            assert len(result.replies[0].lines) == 3
            await printer.wait_for_lines(3)
        assert printer.received == ["^XA", "~HS", "^XZ"]

    @pytest.mark.asyncio
    async def test_status_query_reads_exactly_three_lines(self, fake_printer):
        """~HS consumes three lines; a fourth stays for the next query."""
        _, address = await fake_printer({"~HS": HS_REPLY + HI_REPLY})
        async with PrinterSession() as session:
            await session.connect(address)
            result = await session.send([Start(), HostStatusReturn(), End()])

            assert result.complete
            assert not result.closed
            assert session.state is SessionState.IDLE
            assert session.pending_lines == 0
            assert len(result.replies) == 1
            assert result.replies[0].command == HostStatusReturn()
            assert result.replies[0].lines == HS_REPLY.splitlines(keepends=True)

            # The extra line is still buffered and answers the next query
            follow_up = await session.send([Raw("NOOP", response_lines=1)])
            assert follow_up.replies[0].lines == [HI_REPLY]

    @pytest.mark.asyncio
    async def test_replies_consumed_in_order(self, fake_printer):
        """Replies are matched to queries first-in, first-out."""
        _, address = await fake_printer({
            "~HI": HI_REPLY,
            "~HS": HS_REPLY,
            "~HM": HM_REPLY,
        })
        async with PrinterSession() as session:
            await session.connect(address)
            result = await session.send([
                Start(), HostIndication(), HostStatusReturn(), HostRamStatus(), End(),
            ])

        assert result.complete
        assert [type(r.command) for r in result.replies] == [
            HostIndication, HostStatusReturn, HostRamStatus,
        ]
        assert result.replies[0].lines == [HI_REPLY]
        assert len(result.replies[1].lines) == 3
        assert result.replies[2].lines == [HM_REPLY]

    @pytest.mark.asyncio
    async def test_session_reusable_after_job(self, fake_printer):
        _, address = await fake_printer({"~HI": HI_REPLY})
        async with PrinterSession() as session:
            await session.connect(address)
            first = await session.send([Start(), HostIndication(), End()])
            second = await session.send([Start(), HostIndication(), End()])

        assert first.replies[0].lines == [HI_REPLY]
        assert second.replies[0].lines == [HI_REPLY]


class TestPendingLines:
    """Test the count of reply lines still owed."""

    @pytest.mark.asyncio
    async def test_counts_lines_while_awaiting_reply(self, fake_printer):
        printer, address = await fake_printer()  # never answers
        session = PrinterSession()
        await session.connect(address)
        job = asyncio.create_task(session.send([Start(), HostStatusReturn(), End()]))

        async def _awaiting():
            while session.state is not SessionState.AWAITING_REPLIES:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_awaiting(), 2.0)
        assert session.pending_lines == 3
        await printer.wait_for_lines(3)

        job.cancel()
        with pytest.raises(asyncio.CancelledError):
            await job
        assert session.pending_lines == 0
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_partial_reply_counts_down(self, fake_printer):
        first_line = HS_REPLY.splitlines(keepends=True)[0]
        _, address = await fake_printer({"~HS": first_line})
        session = PrinterSession()
        await session.connect(address)
        job = asyncio.create_task(session.send([HostStatusReturn()]))

        async def _one_line_read():
            while session.pending_lines != 2:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_one_line_read(), 2.0)
        assert not job.done()

        job.cancel()
        with pytest.raises(asyncio.CancelledError):
            await job


class TestEarlyClose:
    """Test end-of-stream handling."""

    @pytest.mark.asyncio
    async def test_close_before_reply_complete(self, fake_printer):
        """Printer closes after one of three lines: reported, not raised."""
        first_line = HS_REPLY.splitlines(keepends=True)[0]
        _, address = await fake_printer({"~HS": first_line}, close_after="~HS")
        session = PrinterSession()
        await session.connect(address)

        result = await session.send([HostStatusReturn()])

        assert result.closed
        assert not result.complete
        assert result.replies[0].lines == [first_line]
        assert session.state is SessionState.DISCONNECTED
        assert session.pending_lines == 0

    @pytest.mark.asyncio
    async def test_close_without_reply(self, fake_printer):
        _, address = await fake_printer(close_after="~HI")
        session = PrinterSession()
        await session.connect(address)

        result = await session.send([HostIndication()])

        assert result.closed
        assert not result.complete
        assert result.replies[0].lines == []
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_satisfied_then_closed(self, fake_printer):
        """A full reply followed by hang-up is complete and disconnects."""
        _, address = await fake_printer({"~HI": HI_REPLY}, close_after="~HI")
        session = PrinterSession()
        await session.connect(address)

        result = await session.send([HostIndication()])

        assert result.complete
        assert result.replies[0].lines == [HI_REPLY]
        await _wait_for_hang_up(session)

        with pytest.raises(ConnectionError, match="Not connected"):
            await session.send([Start(), SetDarkness(15), End()])
        assert session.state is SessionState.DISCONNECTED
        assert session.pending_lines == 0

    @pytest.mark.asyncio
    async def test_hang_up_after_job_without_queries(self, fake_printer):
        _, address = await fake_printer(close_after="^XZ")
        session = PrinterSession()
        await session.connect(address)

        result = await session.send([Start(), SetDarkness(15), End()])
        assert result.replies == []
        await _wait_for_hang_up(session)

        assert not session.is_connected
        with pytest.raises(ConnectionError, match="Not connected"):
            await session.send([Start(), End()])
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reconnect_after_hang_up(self, fake_printer):
        _, address = await fake_printer(close_after="^XZ")
        session = PrinterSession()
        await session.connect(address)
        await session.send([Start(), End()])
        await _wait_for_hang_up(session)

        await session.connect(address)
        assert session.is_connected
        await session.close()


class TestFailures:
    """Test failure propagation from the writer and reader halves."""

    def _attach(self, session, reader, writer):
        session._reader = reader
        session._writer = writer
        reader.at_eof.return_value = False
        session.state = SessionState.CONNECTED

    @pytest.mark.asyncio
    async def test_write_failure_reports_bytes_sent(self):
        """A failing write raises TransmissionError with the bytes sent so far."""
        writer = MagicMock()
        writer.drain = AsyncMock(side_effect=[None, BrokenPipeError("broken pipe")])
        reader = MagicMock()
        session = PrinterSession()
        self._attach(session, reader, writer)

        with pytest.raises(TransmissionError, match="Write failed after 4 bytes") as exc_info:
            await session.send([Start(), SetDarkness(15), End()])

        assert exc_info.value.bytes_sent == len(b"^XA\n")
        assert session.state is SessionState.DISCONNECTED
        writer.close.assert_called()

    @pytest.mark.asyncio
    async def test_write_failure_while_reading(self):
        """A write error is raised even while the reader waits for replies."""
        writer = MagicMock()
        writer.drain = AsyncMock(side_effect=[None, ConnectionResetError("reset")])
        reader = MagicMock()

        async def never():
            await asyncio.sleep(3600)

        reader.readline = never
        session = PrinterSession()
        self._attach(session, reader, writer)

        with pytest.raises(TransmissionError) as exc_info:
            await session.send([HostIndication(), SetDarkness(15)])

        assert exc_info.value.bytes_sent == len(b"~HI\n")

    @pytest.mark.asyncio
    async def test_read_failure(self):
        writer = MagicMock()
        writer.drain = AsyncMock()
        reader = MagicMock()
        reader.readline = AsyncMock(side_effect=ConnectionResetError("reset"))
        session = PrinterSession()
        self._attach(session, reader, writer)

        with pytest.raises(ConnectionError, match="Connection lost"):
            await session.send([HostIndication()])
        assert session.state is SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_external_timeout_cancels_job(self, fake_printer):
        """Callers bound the wait themselves; the job is abandoned."""
        _, address = await fake_printer()  # never answers
        session = PrinterSession()
        await session.connect(address)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(session.send([HostIndication()]), timeout=0.2)

        assert session.state is SessionState.DISCONNECTED
