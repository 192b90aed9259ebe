"""Exception hierarchy for the ZPL printer driver."""


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


class ConnectionError(PrinterError):
    """Error connecting to or communicating with printer."""

    pass


class TransmissionError(PrinterError):
    """A write to the printer failed part way through a job.

    ``bytes_sent`` is the number of bytes handed to the transport before the
    failure. Zero means the printer saw nothing of this job.
    """

    def __init__(self, message: str, bytes_sent: int = 0):
        super().__init__(message)
        self.bytes_sent = bytes_sent


class ImageError(PrinterError):
    """Error processing image for printing."""

    pass


class ImageSizeError(ImageError, ValueError):
    """Image dimensions exceed safety limits."""

    pass


class ResponseError(PrinterError):
    """A reply from the printer could not be understood."""

    pass
