"""
ZPL Command Model.

ZPL is the line-oriented command language spoken by Zebra-compatible
direct-thermal and thermal-transfer label printers. Commands start with a
caret (``^``) for format commands or a tilde (``~``) for control commands
and are separated by newlines.

Every supported directive is one frozen dataclass deriving from
``ZPLCommand``. Each variant knows how to encode itself and how many reply
lines the printer emits for it. No range validation happens here: numbers
are encoded verbatim and the printer is the final judge.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class MediaType(Enum):
    """Media technology for ^MT."""

    DIRECT = "D"  # Color is in the label, darkens when heated
    TRANSFER = "T"  # Color comes from a separate ribbon


class PostPrintAction(Enum):
    """What the printer does with a label once printed (^MM)."""

    TEAR_OFF = "T"  # Present only, user tears off
    CUT = "C"  # Present and cut


def _yes_no(flag: bool) -> str:
    return "Y" if flag else "N"


@dataclass(frozen=True)
class ZPLCommand(ABC):
    """
    Base class for all ZPL directives.

    Subclasses implement ``encode``. Commands that make the printer talk
    back override ``response_lines`` with the number of lines it sends.
    """

    # Unannotated so Raw can redeclare it as a trailing field
    response_lines = 0

    @abstractmethod
    def encode(self) -> str:
        """Return the exact ZPL text for this command."""


# ---- Escape hatch ----


@dataclass(frozen=True)
class Raw(ZPLCommand):
    """
    Pre-encoded ZPL passed through untouched.

    Used for directives not modelled here, such as a ^GF graphic field.

    Args:
        text: ZPL fragment, sent as-is
        response_lines: Lines of reply the fragment makes the printer send
    """

    text: str
    response_lines: int = 0

    def encode(self) -> str:
        return self.text


# ---- Printer configuration ----


@dataclass(frozen=True)
class Magic(ZPLCommand):
    """Vendor initialization sequence (resets prefixes and media tracking)."""

    SEQUENCE: ClassVar[tuple[str, ...]] = ("CT~~CD,~CC^~CT~", "^XA~TA000~JSN^LT0^MNW")

    def encode(self) -> str:
        return "\n".join(self.SEQUENCE)


@dataclass(frozen=True)
class PersistConfig(ZPLCommand):
    """Save the current settings to non-volatile memory."""

    def encode(self) -> str:
        return "^JUS"


@dataclass(frozen=True)
class SetHalfDensity(ZPLCommand):
    """Switch half-density printing on (^JMB) or off (^JMA)."""

    enabled: bool

    def encode(self) -> str:
        return f"^JM{'B' if self.enabled else 'A'}"


@dataclass(frozen=True)
class SetDarkness(ZPLCommand):
    """Set media darkness (typically 0-30)."""

    level: int

    def encode(self) -> str:
        return f"~SD{self.level}"


@dataclass(frozen=True)
class SetEncoding(ZPLCommand):
    """Select the international character set (^CI)."""

    index: int

    def encode(self) -> str:
        return f"^CI{self.index}"


@dataclass(frozen=True)
class SetHome(ZPLCommand):
    """Set the label home position in dots."""

    x: int
    y: int

    def encode(self) -> str:
        return f"^LH{self.x},{self.y}"


@dataclass(frozen=True)
class SetInverted(ZPLCommand):
    """Reverse print (white on black) for the whole label."""

    inverted: bool

    def encode(self) -> str:
        return f"^LR{_yes_no(self.inverted)}"


@dataclass(frozen=True)
class SetMediaType(ZPLCommand):
    """Select direct thermal or thermal transfer media (^MT)."""

    media: MediaType

    def encode(self) -> str:
        return f"^MT{self.media.value}"


@dataclass(frozen=True)
class SetSpeed(ZPLCommand):
    """Set print and slew speed (inches per second codes)."""

    print_speed: int
    slew_speed: int

    def encode(self) -> str:
        return f"^PR{self.print_speed},{self.slew_speed}"


@dataclass(frozen=True)
class LabelSetup(ZPLCommand):
    """
    Set print width (^PW) and label length (^LL).

    Dimensions are given in millimeters and multiplied by the dots per
    millimeter of the print head. The products are zero-padded to at least
    3 and 4 digits; wider values are emitted in full, never truncated.

    Args:
        width: Label width in mm
        height: Label height in mm
        dots: Print head resolution in dots per mm (8 = 203 DPI, 12 = 300 DPI)
    """

    width: int
    height: int
    dots: int

    def encode(self) -> str:
        return f"^PW{self.width * self.dots:03d}\n^LL{self.height * self.dots:04d}"


@dataclass(frozen=True)
class SetPostPrintAction(ZPLCommand):
    """Choose tear-off or cut after each label (^MM)."""

    action: PostPrintAction

    def encode(self) -> str:
        return f"^MM{self.action.value}"


@dataclass(frozen=True)
class SetHorizontalShift(ZPLCommand):
    """Shift all fields left or right (^LS), in dots."""

    shift: int

    def encode(self) -> str:
        return f"^LS{self.shift}"


@dataclass(frozen=True)
class SetVerticalShift(ZPLCommand):
    """Shift all fields up or down (^LT), in dots."""

    shift: int

    def encode(self) -> str:
        return f"^LT{self.shift}"


@dataclass(frozen=True)
class SetTearOffPosition(ZPLCommand):
    """
    Adjust the rest position of the media after printing (~TA).

    Always signed, zero-padded to 4 characters including the sign:
    -20 encodes as ``~TA-020`` and 5 as ``~TA+005``.
    """

    position: int

    def encode(self) -> str:
        return f"~TA{self.position:+04d}"


# ---- Field placement ----


@dataclass(frozen=True)
class MoveOrigin(ZPLCommand):
    """Set the field origin for the next field (^FO), in dots."""

    x: int
    y: int

    def encode(self) -> str:
        return f"^FO{self.x},{self.y}"


@dataclass(frozen=True)
class PrintQuantity(ZPLCommand):
    """
    Number of labels to print (^PQ).

    Args:
        total: Total labels to print
        pause_and_cut_after: Pause (and cut) after this many labels
        replicates: Replicates of each serial number
        cut_only: Cut without pausing when True
    """

    total: int
    pause_and_cut_after: int
    replicates: int
    cut_only: bool

    def encode(self) -> str:
        return (
            f"^PQ{self.total},{self.pause_and_cut_after},"
            f"{self.replicates},{_yes_no(self.cut_only)}"
        )


# ---- Format framing ----


@dataclass(frozen=True)
class Start(ZPLCommand):
    """Format begin (^XA)."""

    def encode(self) -> str:
        return "^XA"


@dataclass(frozen=True)
class End(ZPLCommand):
    """Format end (^XZ)."""

    def encode(self) -> str:
        return "^XZ"


# ---- Host queries ----


@dataclass(frozen=True)
class HostIndication(ZPLCommand):
    """
    Query model, firmware and memory (~HI).

    Response: one line, see responses.HostIdentification.parse
    """

    response_lines: ClassVar[int] = 1

    def encode(self) -> str:
        return "~HI"


@dataclass(frozen=True)
class HostRamStatus(ZPLCommand):
    """
    Query RAM usage (~HM).

    Response: one line, see responses.MemoryStatus.parse
    """

    response_lines: ClassVar[int] = 1

    def encode(self) -> str:
        return "~HM"


@dataclass(frozen=True)
class HostStatusReturn(ZPLCommand):
    """
    Query the printer status strings (~HS).

    Response: three lines, see responses.HostStatus.parse
    """

    response_lines: ClassVar[int] = 3

    def encode(self) -> str:
        return "~HS"


def serialize(command: ZPLCommand) -> str:
    """
    Encode a single command as ZPL text.

    Raises:
        TypeError: If ``command`` is not a ZPLCommand
    """
    if not isinstance(command, ZPLCommand):
        raise TypeError(f"Not a ZPL command: {command!r}")
    return command.encode()


def response_lines(command: ZPLCommand) -> int:
    """Number of reply lines the printer sends for ``command`` (0 if none)."""
    if not isinstance(command, ZPLCommand):
        raise TypeError(f"Not a ZPL command: {command!r}")
    return command.response_lines
