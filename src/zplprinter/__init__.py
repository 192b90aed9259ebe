"""ZPL Label Printer Driver for network printers."""

__version__ = "0.1.0"

from .commands import (
    End,
    HostIndication,
    HostRamStatus,
    HostStatusReturn,
    LabelSetup,
    Magic,
    MediaType,
    MoveOrigin,
    PersistConfig,
    PostPrintAction,
    PrintQuantity,
    Raw,
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
from .errors import (
    ConnectionError,
    ImageError,
    ImageSizeError,
    PrinterError,
    ResponseError,
    TransmissionError,
)
from .image import render_image
from .label import Label, LabelConfig, build_print_job, build_query
from .printer import ZPLPrinter
from .responses import HostIdentification, HostStatus, MemoryStatus
from .session import JobResult, PrinterAddress, PrinterSession, Reply, SessionState

__all__ = [
    "ZPLPrinter",
    "PrinterSession",
    "PrinterAddress",
    "SessionState",
    "JobResult",
    "Reply",
    "Label",
    "LabelConfig",
    "build_print_job",
    "build_query",
    "render_image",
    "ZPLCommand",
    "serialize",
    "response_lines",
    "MediaType",
    "PostPrintAction",
    "Raw",
    "Magic",
    "PersistConfig",
    "SetHalfDensity",
    "SetDarkness",
    "SetEncoding",
    "SetHome",
    "SetInverted",
    "SetMediaType",
    "SetSpeed",
    "LabelSetup",
    "SetPostPrintAction",
    "SetHorizontalShift",
    "SetVerticalShift",
    "SetTearOffPosition",
    "MoveOrigin",
    "PrintQuantity",
    "Start",
    "End",
    "HostIndication",
    "HostRamStatus",
    "HostStatusReturn",
    "HostIdentification",
    "MemoryStatus",
    "HostStatus",
    "PrinterError",
    "ConnectionError",
    "TransmissionError",
    "ImageError",
    "ImageSizeError",
    "ResponseError",
]
