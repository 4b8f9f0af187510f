import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageFilter, UnidentifiedImageError

from ...exceptions import TransformationError
from ...schemas.images.image import TransformationSpec

logger = logging.getLogger(__name__)

# output format name -> (Pillow encoder, mime type)
OUTPUT_FORMATS = {
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
}
DEFAULT_FORMAT = "jpeg"

# Clockwise turns, expressed as Pillow transposes (Pillow's ROTATE_* are counter-clockwise)
ROTATIONS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}

# Modes every stage handles without a silent downgrade
WORKING_MODES = ("RGB", "RGBA", "L", "LA")


@dataclass(frozen=True)
class TransformResult:
    data: bytes
    mime_type: str
    width: int
    height: int


class TransformationEngine:
    """Pure bytes -> bytes image pipeline.

    Stages run in a fixed order (decode, resize, crop, rotate, filters,
    encode) and each one only runs when its field of the TransformationSpec is set.
    Every failure is a ``TransformationError``; nothing partial is returned.
    """

    def __init__(self, jpeg_quality: int = 90):
        self.jpeg_quality = jpeg_quality

    def apply(self, data: bytes, spec: TransformationSpec) -> TransformResult:
        encoder, mime_type = self.resolve_format(spec.format)

        image = self.decode(data)
        if spec.resize is not None:
            image = self.resize(image, spec.resize.width, spec.resize.height)
        if spec.crop is not None:
            crop = spec.crop
            image = self.crop(image, crop.x, crop.y, crop.width, crop.height)
        if spec.rotate is not None:
            image = self.rotate(image, spec.rotate)
        if spec.filters is not None:
            if spec.filters.grayscale:
                image = self.grayscale(image)
            if spec.filters.blur is not None:
                image = self.blur(image, spec.filters.blur)

        output = self.encode(image, encoder)
        return TransformResult(data=output, mime_type=mime_type, width=image.width, height=image.height)

    @staticmethod
    def resolve_format(name: Optional[str]) -> Tuple[str, str]:
        key = (name or DEFAULT_FORMAT).strip().lower()
        if key not in OUTPUT_FORMATS:
            raise TransformationError("format", f"unsupported output format '{name}' (use jpeg or png)")
        return OUTPUT_FORMATS[key]

    @staticmethod
    def decode(data: bytes) -> Image.Image:
        if not data:
            raise TransformationError("decode", "not a decodable image: empty payload")
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
            if image.mode not in WORKING_MODES:
                has_alpha = "transparency" in image.info or image.mode in ("PA", "RGBa", "La")
                if image.mode in ("1", "I", "I;16", "F"):
                    image = image.convert("L")
                else:
                    image = image.convert("RGBA" if has_alpha else "RGB")
        except Image.DecompressionBombError as e:
            raise TransformationError("decode", f"image too large: {e}")
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
            raise TransformationError("decode", f"not a decodable image: {e}")
        return image

    @staticmethod
    def resize(image: Image.Image, width: int, height: int) -> Image.Image:
        if width <= 0 or height <= 0:
            raise TransformationError("resize", f"target size must be positive, got {width}x{height}")
        # Lanczos keeps downscaled photographs sharp
        return image.resize((width, height), Image.Resampling.LANCZOS)

    @staticmethod
    def crop(image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
        if x < 0 or y < 0 or width <= 0 or height <= 0:
            raise TransformationError("crop", f"invalid rectangle x={x} y={y} width={width} height={height}")
        if x + width > image.width or y + height > image.height:
            raise TransformationError(
                "crop",
                f"rectangle x={x} y={y} width={width} height={height} exceeds image bounds {image.width}x{image.height}",
            )
        return image.crop((x, y, x + width, y + height))

    @staticmethod
    def rotate(image: Image.Image, angle: float) -> Image.Image:
        # Only exact right angles act; anything else leaves the image untouched
        transpose = ROTATIONS.get(angle)
        if transpose is None:
            logger.debug(f"Ignoring rotation by {angle} degrees")
            return image
        return image.transpose(transpose)

    @staticmethod
    def grayscale(image: Image.Image) -> Image.Image:
        return image.convert("LA" if image.mode in ("RGBA", "LA") else "L")

    @staticmethod
    def blur(image: Image.Image, radius: float) -> Image.Image:
        if radius < 0:
            raise TransformationError("blur", f"radius must not be negative, got {radius}")
        return image.filter(ImageFilter.GaussianBlur(radius))

    def encode(self, image: Image.Image, encoder: str) -> bytes:
        buf = io.BytesIO()
        try:
            if encoder == "JPEG":
                # JPEG has no alpha channel
                if image.mode == "RGBA":
                    image = image.convert("RGB")
                elif image.mode == "LA":
                    image = image.convert("L")
                image.save(buf, format="JPEG", quality=self.jpeg_quality, optimize=True)
            else:
                image.save(buf, format=encoder, optimize=True)
        except (OSError, ValueError) as e:
            raise TransformationError("encode", f"cannot encode as {encoder}: {e}")
        return buf.getvalue()
