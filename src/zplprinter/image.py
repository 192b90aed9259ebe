"""
Image Processing for ZPL Printers.

Converts images to a 1-bit ^GF graphic field that can be placed in a label
program like any other command.
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image, ImageOps

from .commands import Raw
from .errors import ImageError, ImageSizeError

# Image size limits to prevent memory exhaustion from malicious/malformed images
MAX_IMAGE_DIMENSION = 10000  # Maximum width or height in pixels
MAX_IMAGE_PIXELS = 10_000_000  # Maximum total pixels (10 megapixels)

ImageSource = Union[str, Path, bytes, Image.Image]


def load_image(source: ImageSource) -> Image.Image:
    """
    Load an image from various sources.

    Args:
        source: File path, bytes, or PIL Image

    Returns:
        PIL Image object

    Raises:
        ImageSizeError: If image dimensions exceed safety limits
        ImageError: If the source cannot be read or its type is unsupported
    """
    try:
        if isinstance(source, Image.Image):
            img = source
        elif isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise ImageError(f"Image file not found: {path}")
            img = Image.open(path)
        elif isinstance(source, bytes):
            img = Image.open(BytesIO(source))
        else:
            raise ImageError(f"Unsupported image type: {type(source)}")
    except ImageError:
        raise
    except (OSError, ValueError) as e:
        raise ImageError(f"Failed to load image: {e}") from e

    # Validate image dimensions to prevent memory exhaustion
    if img.width > MAX_IMAGE_DIMENSION or img.height > MAX_IMAGE_DIMENSION:
        raise ImageSizeError(
            f"Image dimensions ({img.width}x{img.height}) exceed maximum "
            f"({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
        )
    if img.width * img.height > MAX_IMAGE_PIXELS:
        raise ImageSizeError(
            f"Image pixel count ({img.width * img.height:,}) exceeds "
            f"maximum ({MAX_IMAGE_PIXELS:,})"
        )

    return img


def prepare(image: Image.Image, width: int, height: int, threshold: int = 128) -> Image.Image:
    """
    Resize an image to fill the label and reduce it to 1 bit.

    The image is scaled to cover ``width`` x ``height`` and the overflow is
    cropped evenly from both sides.
    """
    if width <= 0 or height <= 0:
        raise ImageError(f"Printable area must be positive, got {width}x{height}")

    image = image.convert("L")
    if image.size != (width, height):
        image = ImageOps.fit(image, (width, height), Image.Resampling.LANCZOS)

    return image.point(lambda x: 0 if x < threshold else 255, mode="1")


def to_bytes(image: Image.Image) -> bytes:
    """
    Convert 1-bit image to raw bitmap bytes.

    Returns packed bytes where each bit represents a pixel.
    MSB is leftmost pixel. Black pixels are 1, white are 0, and each row
    is padded with white to a whole number of bytes.
    """
    # PIL packs "1" images with white as 1, so flip before packing
    inverted = image.convert("L").point(lambda x: 255 if x == 0 else 0, mode="1")
    return inverted.tobytes()


def render_image(source: ImageSource, width: int, height: int, threshold: int = 128) -> Raw:
    """
    Render an image as a ^GFA graphic field.

    Args:
        source: Image to render (path, bytes, or PIL Image)
        width: Field width in dots
        height: Field height in dots
        threshold: Grayscale level below which a pixel prints black

    Returns:
        Raw command holding ``^GFA,total,total,row_bytes,HEX^FS``
    """
    img = prepare(load_image(source), width, height, threshold)
    data = to_bytes(img)
    row_bytes = (img.width + 7) // 8
    total = len(data)
    return Raw(f"^GFA,{total},{total},{row_bytes},{data.hex().upper()}^FS")
