"""
High-Level ZPL Printer Interface.

Provides a simple API for printing labels on ZPL network printers.
"""

import asyncio
from dataclasses import replace
from typing import Optional

from .commands import HostIndication, HostRamStatus, HostStatusReturn, ZPLCommand
from .errors import ConnectionError, ResponseError
from .image import ImageSource, render_image
from .label import Label, LabelConfig, build_print_job, build_query
from .responses import HostIdentification, HostStatus, MemoryStatus
from .session import JobResult, PrinterAddress, PrinterSession


class ZPLPrinter:
    """
    High-level interface to a ZPL label printer.

    Print jobs are sent once. If a send fails the printer may hold a
    partial format, so reconnecting and resending the whole label is left
    to the caller.
    """

    def __init__(self, config: Optional[LabelConfig] = None):
        """
        Initialize printer interface.

        Args:
            config: Label dimensions and copy count (default 51x51mm at
                12 dots/mm, one copy)
        """
        self.session = PrinterSession()
        self.config = config or LabelConfig()
        self._debug = False

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[ZPL] {message}")

    async def connect(
        self, address: PrinterAddress, retries: int = 0, retry_delay: float = 1.0
    ) -> bool:
        """
        Connect to a printer.

        Args:
            address: Network address of the printer
            retries: Number of connection retries (default 0)
            retry_delay: Delay between retries in seconds (default 1.0)

        Returns:
            True if connection successful, False after all attempts failed
        """
        attempts = retries + 1

        for attempt in range(attempts):
            if attempt > 0:
                self._log(f"Connection retry {attempt}/{retries}...")
                await asyncio.sleep(retry_delay)

            self._log(f"Connecting to {address}...")
            try:
                await self.session.connect(address)
                self._log("Connected")
                return True
            except ConnectionError as e:
                self._log(f"Connection failed (attempt {attempt + 1}/{attempts}): {e}")

        return False

    async def disconnect(self):
        """Disconnect from the printer."""
        await self.session.close()
        self._log("Disconnected")

    async def send_label(self, label: Label) -> JobResult:
        """
        Send one label program.

        Raises:
            ConnectionError: If not connected or connection lost
            TransmissionError: If the program could not be written
        """
        if not self.session.is_connected:
            raise ConnectionError("Not connected to printer")

        self._log(f"Sending {len(label)} commands, {len(label.expected_replies())} queries")
        result = await self.session.send(label)
        self._log(f"Sent {result.bytes_sent} bytes, {len(result.replies)} replies")
        if result.closed:
            self._log("Printer closed the connection")
        return result

    async def _query(self, query: ZPLCommand) -> list[bytes]:
        result = await self.send_label(build_query(query))
        if not result.complete:
            raise ResponseError(f"Incomplete reply to {query.encode()}")
        for line in result.replies[0].lines:
            self._log(f"RX: {line!r}")
        return result.replies[0].lines

    async def get_identification(self) -> HostIdentification:
        """Query model and firmware (~HI)."""
        lines = await self._query(HostIndication())
        info = HostIdentification.parse(lines[0])
        if info is None:
            raise ResponseError(f"Unrecognized ~HI reply: {lines[0]!r}")
        return info

    async def get_memory_status(self) -> MemoryStatus:
        """Query RAM usage (~HM)."""
        lines = await self._query(HostRamStatus())
        memory = MemoryStatus.parse(lines[0])
        if memory is None:
            raise ResponseError(f"Unrecognized ~HM reply: {lines[0]!r}")
        return memory

    async def get_status(self) -> HostStatus:
        """Query printer status (~HS)."""
        lines = await self._query(HostStatusReturn())
        status = HostStatus.parse(lines)
        if status is None:
            raise ResponseError(f"Unrecognized ~HS reply: {lines!r}")
        return status

    def render_program(self, image: ImageSource, copies: Optional[int] = None) -> Label:
        """
        Build the print job for an image without sending it.

        Args:
            image: Image source (path, bytes, or PIL Image)
            copies: Override the configured number of copies

        Raises:
            ImageError: If image cannot be loaded
        """
        config = self.config
        if copies is not None:
            config = replace(config, copies=copies)

        self._log(f"Rendering image to {config.printable_width}x{config.printable_height} dots")
        graphic = render_image(image, config.printable_width, config.printable_height)
        return build_print_job(config, graphic)

    async def print_image(self, image: ImageSource, copies: Optional[int] = None) -> JobResult:
        """
        Print an image as a label.

        Args:
            image: Image source (path, bytes, or PIL Image)
            copies: Number of copies (default from config)

        Returns:
            JobResult of the send

        Raises:
            ConnectionError: If not connected or connection lost
            ImageError: If image cannot be loaded
            TransmissionError: If the job could not be written
        """
        if not self.session.is_connected:
            raise ConnectionError("Not connected to printer")

        label = self.render_program(image, copies)
        return await self.send_label(label)

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to a printer."""
        return self.session.is_connected
