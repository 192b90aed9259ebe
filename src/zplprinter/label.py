"""
Label Program Assembly.

A ``Label`` is the ordered list of commands making up one print job. It is
serialized by joining each command's encoding with newlines, in order,
without reordering or validating anything.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator

from .commands import (
    End,
    LabelSetup,
    MediaType,
    MoveOrigin,
    PersistConfig,
    PostPrintAction,
    PrintQuantity,
    SetDarkness,
    SetEncoding,
    SetHalfDensity,
    SetHome,
    SetHorizontalShift,
    SetInverted,
    SetMediaType,
    SetPostPrintAction,
    SetSpeed,
    SetTearOffPosition,
    SetVerticalShift,
    Start,
    ZPLCommand,
    response_lines,
    serialize,
)

# 2" square label on a 300 DPI head
DEFAULT_WIDTH_MM = 51
DEFAULT_HEIGHT_MM = 51
DEFAULT_DPMM = 12
DEFAULT_HOME_X = 32
DEFAULT_HOME_Y = 0


@dataclass
class LabelConfig:
    """
    Job sizing for a print.

    Attributes:
        width_mm: Label width in mm
        height_mm: Label height in mm
        dpmm: Print head dots per mm
        copies: Number of labels to print
        home_x: Left/right margin in dots
        home_y: Top/bottom margin in dots
    """

    width_mm: int = DEFAULT_WIDTH_MM
    height_mm: int = DEFAULT_HEIGHT_MM
    dpmm: int = DEFAULT_DPMM
    copies: int = 1
    home_x: int = DEFAULT_HOME_X
    home_y: int = DEFAULT_HOME_Y

    @property
    def printable_width(self) -> int:
        """Width available to the graphic, in dots."""
        return self.width_mm * self.dpmm - 2 * self.home_x

    @property
    def printable_height(self) -> int:
        """Height available to the graphic, in dots."""
        return self.height_mm * self.dpmm - 2 * self.home_y


class Label:
    """
    Ordered ZPL program for one print job.

    Start/End balance is the caller's responsibility; see is_well_formed.
    """

    def __init__(self, commands: Iterable[ZPLCommand] = ()):
        self.commands: list[ZPLCommand] = list(commands)

    def add(self, *commands: ZPLCommand) -> "Label":
        """Append commands, returning self for chaining."""
        self.commands.extend(commands)
        return self

    def clear(self):
        """Clear all queued commands."""
        self.commands.clear()

    def __iter__(self) -> Iterator[ZPLCommand]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def to_zpl(self) -> str:
        """Get the whole program as newline-separated ZPL."""
        return "\n".join(serialize(command) for command in self.commands)

    def expected_replies(self) -> list[tuple[ZPLCommand, int]]:
        """List (command, line count) for each command the printer answers."""
        return [
            (command, response_lines(command))
            for command in self.commands
            if response_lines(command) > 0
        ]

    def is_well_formed(self) -> bool:
        """
        Check format framing.

        True when every Start is closed by an End before the next Start and
        the program does not end inside an open format. Commands outside a
        format (control commands like ~HS) are allowed.
        """
        open_format = False
        for command in self.commands:
            if isinstance(command, Start):
                if open_format:
                    return False
                open_format = True
            elif isinstance(command, End):
                if not open_format:
                    return False
                open_format = False
        return not open_format


def build_config_block() -> list[ZPLCommand]:
    """
    Printer setup format, persisted with ^JUS.

    Direct thermal media, tear-off adjusted 20 dots back, darkness 15.
    """
    return [
        Start(),
        SetVerticalShift(12),
        SetTearOffPosition(-20),
        SetMediaType(MediaType.DIRECT),
        SetHome(0, 0),
        SetHalfDensity(False),
        SetSpeed(4, 4),
        SetDarkness(15),
        PersistConfig(),
        SetInverted(False),
        SetEncoding(0),
        End(),
    ]


def build_print_job(config: LabelConfig, graphic: ZPLCommand) -> Label:
    """
    Build a complete print job for one graphic field.

    The job is the setup format from build_config_block followed by a print
    format that sizes the label, places the graphic at the home margin and
    prints ``config.copies`` labels, cutting after each batch.

    Args:
        config: Label dimensions and copy count
        graphic: Command drawing the label content (e.g. from render_image)

    Returns:
        Label ready to send
    """
    label = Label(build_config_block())
    label.add(
        Start(),
        SetPostPrintAction(PostPrintAction.CUT),
        LabelSetup(config.width_mm, config.height_mm, config.dpmm),
        SetHorizontalShift(0),
        MoveOrigin(config.home_x, config.home_x),
        graphic,
        PrintQuantity(
            total=config.copies,
            pause_and_cut_after=config.copies,
            replicates=config.copies,
            cut_only=True,
        ),
        End(),
    )
    return label


def build_query(*queries: ZPLCommand) -> Label:
    """Wrap host queries in a format so they can be sent on their own."""
    return Label([Start(), *queries, End()])
