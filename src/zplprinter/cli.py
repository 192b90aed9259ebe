"""
Command-Line Interface for ZPL Printers.

Usage:
    zpl print IMAGE [-a HOST[:PORT]]   - Print an image
    zpl status [-a HOST[:PORT]]        - Show printer status
    zpl raw ZPL [-a HOST[:PORT]]       - Send a raw ZPL fragment
"""

import asyncio
import sys

import click

from .commands import Raw
from .errors import (
    ConnectionError,
    ImageError,
    PrinterError,
    ResponseError,
    TransmissionError,
)
from .label import DEFAULT_DPMM, DEFAULT_HEIGHT_MM, DEFAULT_WIDTH_MM, LabelConfig, build_query
from .printer import ZPLPrinter
from .session import PrinterAddress

DEFAULT_ADDRESS = "192.168.1.39:9100"


def validate_printer_address(ctx, param, value):
    """Validate a ``host[:port]`` printer address.

    Args:
        ctx: Click context
        param: Click parameter
        value: Address value to validate

    Returns:
        The parsed PrinterAddress

    Raises:
        click.BadParameter: If the address format is invalid
    """
    if value is None:
        return None
    try:
        return PrinterAddress.parse(value)
    except ValueError as e:
        raise click.BadParameter(
            f"Invalid printer address: '{value}'. Expected format: HOST[:PORT] ({e})"
        )


def address_option(func):
    return click.option(
        "--address",
        "-a",
        default=DEFAULT_ADDRESS,
        show_default=True,
        callback=validate_printer_address,
        help="Printer network address",
    )(func)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.pass_context
def main(ctx, debug):
    """ZPL Label Printer CLI."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command("print")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@address_option
@click.option("--copies", type=click.IntRange(min=1), default=1, help="Number of copies")
@click.option(
    "--mm-width", "width", type=click.IntRange(min=1), default=DEFAULT_WIDTH_MM,
    help="Label width in mm",
)
@click.option(
    "--mm-height", "height", type=click.IntRange(min=1), default=DEFAULT_HEIGHT_MM,
    help="Label height in mm",
)
@click.option(
    "--dpmm", type=click.IntRange(min=1), default=DEFAULT_DPMM,
    help="Print head dots per mm",
)
@click.option(
    "--output-zpl-only",
    is_flag=True,
    help="Print the generated ZPL instead of sending it",
)
@click.pass_context
def print_image(ctx, image, address, copies, width, height, dpmm, output_zpl_only):
    """Print an image file.

    The image is scaled to fill the label and sent as a graphic field.
    """
    config = LabelConfig(width_mm=width, height_mm=height, dpmm=dpmm, copies=copies)
    printer = ZPLPrinter(config)
    printer.set_debug(ctx.obj["debug"])

    if output_zpl_only:
        try:
            label = printer.render_program(image)
        except ImageError as e:
            click.echo(f"Image error: {e}", err=True)
            sys.exit(1)
        click.echo(label.to_zpl())
        return

    async def _print():
        click.echo(f"Connecting to {address}...")

        try:
            if not await printer.connect(address):
                click.echo("Failed to connect!", err=True)
                sys.exit(1)

            click.echo(f"Printing {image}...")
            result = await printer.print_image(image)

            if result.closed:
                click.echo("Printer closed the connection.")
            click.echo(f"Print complete! ({result.bytes_sent} bytes sent)")

        except ConnectionError as e:
            click.echo(f"Connection error: {e}", err=True)
            sys.exit(1)
        except ImageError as e:
            click.echo(f"Image error: {e}", err=True)
            sys.exit(1)
        except TransmissionError as e:
            click.echo(f"Print error: {e}", err=True)
            sys.exit(1)
        except PrinterError as e:
            click.echo(f"Printer error: {e}", err=True)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_print())


@main.command()
@address_option
@click.pass_context
def status(ctx, address):
    """Show printer identification, memory and status."""

    async def _status():
        printer = ZPLPrinter()
        printer.set_debug(ctx.obj["debug"])

        click.echo(f"Connecting to {address}...")

        try:
            if not await printer.connect(address):
                click.echo("Failed to connect!", err=True)
                sys.exit(1)

            info = await printer.get_identification()
            click.echo(f"Printer: {info}")
            memory = await printer.get_memory_status()
            click.echo(str(memory))
            state = await printer.get_status()
            click.echo(f"Status: {state}")

        except ConnectionError as e:
            click.echo(f"Connection error: {e}", err=True)
            sys.exit(1)
        except ResponseError as e:
            click.echo(f"Response error: {e}", err=True)
            sys.exit(1)
        except PrinterError as e:
            click.echo(f"Printer error: {e}", err=True)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_status())


@main.command()
@click.argument("zpl")
@address_option
@click.option(
    "--lines",
    type=click.IntRange(min=0),
    default=0,
    help="Number of reply lines to wait for",
)
@click.option(
    "--force",
    is_flag=True,
    help="Acknowledge risks and skip warning prompt",
)
@click.pass_context
def raw(ctx, zpl, address, lines, force):
    """Send a raw ZPL fragment to the printer (for debugging/testing).

    WARNING: Raw ZPL is sent unchecked. Commands like ^JUS permanently
    change the printer configuration.

    The fragment is wrapped in ^XA/^XZ. Use --lines to read back replies
    to queries such as ~HS (3 lines).
    """
    if not force:
        click.echo(
            "WARNING: Raw mode sends arbitrary ZPL directly to the printer. "
            "This can permanently change its configuration.",
            err=True,
        )
        if not click.confirm("Do you want to continue?"):
            click.echo("Aborted.")
            return

    async def _raw():
        printer = ZPLPrinter()
        printer.set_debug(True)  # Always debug for raw commands

        click.echo(f"Connecting to {address}...")

        if not await printer.connect(address):
            click.echo("Failed to connect!", err=True)
            sys.exit(1)

        try:
            click.echo(f"Sending: {zpl}")
            result = await printer.send_label(build_query(Raw(zpl, response_lines=lines)))

            received = [line for reply in result.replies for line in reply.lines]
            if received:
                for line in received:
                    click.echo(f"Response: {line!r}")
            else:
                click.echo("No response")
            if not result.complete:
                click.echo("Connection closed before all replies arrived", err=True)
        except PrinterError as e:
            click.echo(f"Printer error: {e}", err=True)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_raw())


if __name__ == "__main__":
    main()
