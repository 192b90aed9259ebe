"""
Response Parsers for ZPL Host Queries.

This module parses replies to the ~HI, ~HM and ~HS host queries. Each
reply string is framed by STX (0x02) and ETX (0x03) and terminated with
CRLF; the framing is stripped before the comma-separated fields are read.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

STX = b"\x02"
ETX = b"\x03"


def _unframe(data: bytes) -> str:
    """Strip CRLF and STX/ETX framing and decode as ASCII."""
    data = data.strip(b"\r\n")
    data = data.strip(STX + ETX)
    return data.decode("ascii", errors="replace").strip()


def _fields(data: bytes) -> list[str]:
    return [part.strip() for part in _unframe(data).split(",")]


@dataclass
class HostIdentification:
    """
    Parsed ~HI response.

    Response structure (one line):
        model,version,dots_per_mm,memory[,options]

    For example ``ZD420-300dpi,V84.20.21Z,12,8176KB`` for a 300 DPI
    (12 dots/mm) printer with 8 MB of memory.
    """

    model: str
    version: str
    dots_per_mm: int
    memory: str
    options: str = ""
    raw_data: bytes = b""

    @classmethod
    def parse(cls, data: bytes) -> Optional["HostIdentification"]:
        """
        Parse ~HI response bytes.

        Returns:
            HostIdentification instance or None if parsing fails
        """
        fields = _fields(data)
        if len(fields) < 4:
            return None

        try:
            dots_per_mm = int(fields[2])
        except ValueError:
            return None

        return cls(
            model=fields[0],
            version=fields[1],
            dots_per_mm=dots_per_mm,
            memory=fields[3],
            options=",".join(fields[4:]),
            raw_data=data,
        )

    def __str__(self) -> str:
        return f"{self.model} (firmware {self.version}, {self.dots_per_mm} dots/mm, {self.memory})"


@dataclass
class MemoryStatus:
    """
    Parsed ~HM response.

    Response structure (one line, values in KB):
        total,maximum_available,currently_available
    """

    total_kb: int
    max_available_kb: int
    available_kb: int
    raw_data: bytes = b""

    @classmethod
    def parse(cls, data: bytes) -> Optional["MemoryStatus"]:
        """Parse ~HM response."""
        fields = _fields(data)
        if len(fields) < 3:
            return None

        try:
            total, maximum, available = (int(value) for value in fields[:3])
        except ValueError:
            return None

        return cls(
            total_kb=total,
            max_available_kb=maximum,
            available_kb=available,
            raw_data=data,
        )

    def __str__(self) -> str:
        return f"Memory: {self.available_kb}KB free of {self.total_kb}KB"


@dataclass
class HostStatus:
    """
    Parsed ~HS response.

    The printer answers with three strings:

    String 1: ``aaa,b,c,dddd,eee,f,g,h,iii,j,k,l``
        aaa   communication settings
        b     paper out flag
        c     pause flag
        dddd  label length in dots
        eee   formats in receive buffer
        f     buffer full flag
        g     communications diagnostic mode flag
        h     partial format flag
        iii   unused
        j     corrupt RAM flag
        k     under temperature flag
        l     over temperature flag

    String 2: ``mmm,n,o,p,q,r,s,t,uuuuuuuu,v,www``
        mmm       function settings
        n         unused
        o         head up flag
        p         ribbon out flag
        q         thermal transfer mode flag
        r         print mode
        s         print width mode
        t         label waiting flag
        uuuuuuuu  labels remaining in batch
        v         format while printing flag
        www       graphic images stored in memory

    String 3: ``xxxx,y``
        xxxx  password
        y     static RAM installed flag
    """

    paper_out: bool
    paused: bool
    label_length: int
    formats_in_buffer: int
    buffer_full: bool
    partial_format: bool
    corrupt_ram: bool
    under_temperature: bool
    over_temperature: bool
    head_up: bool
    ribbon_out: bool
    thermal_transfer: bool
    print_mode: int
    label_waiting: bool
    labels_remaining: int
    graphics_stored: int
    raw_data: list[bytes] = field(default_factory=list)

    @classmethod
    def parse(cls, lines: Sequence[bytes]) -> Optional["HostStatus"]:
        """
        Parse the three ~HS response lines.

        Returns:
            HostStatus instance or None if fewer than three lines were
            received or a field is malformed
        """
        if len(lines) < 3:
            return None

        first = _fields(lines[0])
        second = _fields(lines[1])
        if len(first) < 12 or len(second) < 11:
            return None

        try:
            return cls(
                paper_out=first[1] == "1",
                paused=first[2] == "1",
                label_length=int(first[3]),
                formats_in_buffer=int(first[4]),
                buffer_full=first[5] == "1",
                partial_format=first[7] == "1",
                corrupt_ram=first[9] == "1",
                under_temperature=first[10] == "1",
                over_temperature=first[11] == "1",
                head_up=second[2] == "1",
                ribbon_out=second[3] == "1",
                thermal_transfer=second[4] == "1",
                print_mode=int(second[5]),
                label_waiting=second[7] == "1",
                labels_remaining=int(second[8]),
                graphics_stored=int(second[10]),
                raw_data=list(lines[:3]),
            )
        except ValueError:
            return None

    @property
    def is_ready(self) -> bool:
        """True if nothing stops the printer from printing."""
        return not (
            self.paper_out
            or self.paused
            or self.head_up
            or self.ribbon_out
            or self.buffer_full
            or self.corrupt_ram
            or self.under_temperature
            or self.over_temperature
        )

    def errors(self) -> list[str]:
        """Human-readable list of active error conditions."""
        checks = [
            (self.paper_out, "paper out"),
            (self.paused, "paused"),
            (self.head_up, "head open"),
            (self.ribbon_out, "ribbon out"),
            (self.buffer_full, "buffer full"),
            (self.corrupt_ram, "corrupt RAM"),
            (self.under_temperature, "under temperature"),
            (self.over_temperature, "over temperature"),
        ]
        return [name for active, name in checks if active]

    def __str__(self) -> str:
        if self.is_ready:
            return f"Ready ({self.formats_in_buffer} formats buffered)"
        return "Not ready: " + ", ".join(self.errors())
