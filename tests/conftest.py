"""
Pytest configuration for ZPL printer tests.

Provides fixtures and command-line options for hardware tests, and a fake
printer served on localhost for session tests.
"""

import asyncio

import pytest
import pytest_asyncio

from zplprinter import PrinterAddress, ZPLPrinter


def pytest_addoption(parser):
    """Add command-line options for hardware tests."""
    parser.addoption(
        "--address",
        action="store",
        default=None,
        help="Network address of the printer for hardware tests (HOST[:PORT])",
    )


@pytest.fixture
def printer_address(request):
    """Get the printer address from command line."""
    address = request.config.getoption("--address")
    if address is None:
        pytest.skip("No printer address provided (use --address=HOST[:PORT])")
    return PrinterAddress.parse(address)


@pytest_asyncio.fixture
async def connected_printer(printer_address):
    """Provide a connected printer instance."""
    printer = ZPLPrinter()
    printer.set_debug(True)

    if not await printer.connect(printer_address, retries=2, retry_delay=1.0):
        pytest.skip(f"Could not connect to printer at {printer_address}")

    yield printer

    await printer.disconnect()


class FakePrinter:
    """
    Minimal TCP printer.

    Records every line it receives and answers queries from ``replies``,
    a mapping of query text (e.g. "~HS") to the raw bytes to send back.
    With ``close_after`` set, the connection is closed as soon as that
    query arrives (after sending its reply).
    """

    def __init__(self, replies=None, close_after=None):
        self.replies = replies or {}
        self.close_after = close_after
        self.received: list[str] = []
        self.server = None
        self._writers = []

    async def start(self) -> PrinterAddress:
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        port = self.server.sockets[0].getsockname()[1]
        return PrinterAddress("127.0.0.1", port)

    async def wait_for_lines(self, count, timeout=2.0):
        """Wait until at least ``count`` lines have been received."""

        async def _poll():
            while len(self.received) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)

    async def stop(self):
        for writer in self._writers:
            writer.close()
        self.server.close()
        await self.server.wait_closed()

    async def _handle(self, reader, writer):
        self._writers.append(writer)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                text = line.decode().rstrip("\n")
                self.received.append(text)
                if text in self.replies:
                    writer.write(self.replies[text])
                    await writer.drain()
                if text == self.close_after:
                    break
        finally:
            writer.close()


@pytest_asyncio.fixture
async def fake_printer():
    """Factory for fake printers; servers are stopped after the test."""
    printers = []

    async def _start(replies=None, close_after=None):
        printer = FakePrinter(replies, close_after)
        address = await printer.start()
        printers.append(printer)
        return printer, address

    yield _start

    for printer in printers:
        await printer.stop()
