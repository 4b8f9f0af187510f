import io

import pytest
from PIL import Image

from imagehub.application.services.transform_engine import TransformationEngine
from imagehub.exceptions import TransformationError, ValidationError
from imagehub.schemas.images.image import CropSpec, FilterSpec, ResizeSpec, TransformationSpec


def decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


@pytest.fixture
def engine():
    return TransformationEngine(jpeg_quality=90)


def test_no_operations_keeps_dimensions_and_defaults_to_jpeg(engine, make_image):
    source = make_image(64, 48, "PNG")
    result = engine.apply(source, TransformationSpec())

    assert result.mime_type == "image/jpeg"
    out = decode(result.data)
    assert out.format == "JPEG"
    assert out.size == (64, 48)


def test_resize_is_exact(engine, jpeg_bytes):
    result = engine.apply(jpeg_bytes, TransformationSpec(resize=ResizeSpec(width=50, height=50)))
    assert decode(result.data).size == (50, 50)
    assert (result.width, result.height) == (50, 50)


@pytest.mark.parametrize("angle, expected", [(90, (30, 80)), (180, (80, 30)), (270, (30, 80)), (90.0, (30, 80))])
def test_right_angle_rotation_dimensions(engine, make_image, angle, expected):
    source = make_image(80, 30, "PNG")
    result = engine.apply(source, TransformationSpec(rotate=angle, format="png"))
    assert decode(result.data).size == expected


@pytest.mark.parametrize("angle", [0, 45, -90, 360, 89.5])
def test_other_angles_are_ignored(engine, make_image, angle):
    source = make_image(80, 30, "PNG")
    result = engine.apply(source, TransformationSpec(rotate=angle, format="png"))
    assert decode(result.data).size == (80, 30)


def test_rotate_90_is_clockwise(engine):
    img = Image.new("RGB", (4, 2), (0, 0, 255))
    img.putpixel((0, 0), (255, 0, 0))
    buf = io.BytesIO()
    img.save(buf, format="PNG")

    result = engine.apply(buf.getvalue(), TransformationSpec(rotate=90, format="png"))
    out = decode(result.data).convert("RGB")

    assert out.size == (2, 4)
    # top-left corner moves to top-right
    assert out.getpixel((1, 0)) == (255, 0, 0)
    assert out.getpixel((0, 0)) == (0, 0, 255)


def test_crop_inside_bounds(engine, make_image):
    source = make_image(100, 80, "PNG")
    spec = TransformationSpec(crop=CropSpec(x=10, y=20, width=30, height=40), format="png")
    assert decode(engine.apply(source, spec).data).size == (30, 40)


def test_crop_touching_the_edge_is_allowed(engine, make_image):
    source = make_image(100, 80, "PNG")
    spec = TransformationSpec(crop=CropSpec(x=50, y=40, width=50, height=40), format="png")
    assert decode(engine.apply(source, spec).data).size == (50, 40)


def test_crop_out_of_bounds_is_rejected(engine, make_image):
    source = make_image(100, 80, "PNG")
    spec = TransformationSpec(crop=CropSpec(x=90, y=0, width=20, height=10))
    with pytest.raises(TransformationError) as exc:
        engine.apply(source, spec)
    assert exc.value.stage == "crop"
    assert "exceeds image bounds" in exc.value.message


def test_crop_applies_after_resize(engine, make_image):
    source = make_image(400, 400, "PNG")
    spec = TransformationSpec(resize=ResizeSpec(width=50, height=50), crop=CropSpec(x=0, y=0, width=60, height=10))
    with pytest.raises(TransformationError):
        engine.apply(source, spec)


@pytest.mark.parametrize("fmt", ["bmp", "gif", "webp", "tiff", ""])
def test_unsupported_format_is_validation_error(engine, jpeg_bytes, fmt):
    with pytest.raises(ValidationError) as exc:
        engine.apply(jpeg_bytes, TransformationSpec(format=fmt or " "))
    assert isinstance(exc.value, TransformationError)
    assert exc.value.stage == "format"


@pytest.mark.parametrize("fmt, mime, pil_format", [("png", "image/png", "PNG"), ("PNG", "image/png", "PNG"), ("jpg", "image/jpeg", "JPEG"), ("jpeg", "image/jpeg", "JPEG")])
def test_output_formats(engine, jpeg_bytes, fmt, mime, pil_format):
    result = engine.apply(jpeg_bytes, TransformationSpec(format=fmt))
    assert result.mime_type == mime
    assert decode(result.data).format == pil_format


def test_undecodable_bytes_are_validation_error(engine):
    with pytest.raises(TransformationError) as exc:
        engine.apply(b"definitely not an image", TransformationSpec())
    assert exc.value.stage == "decode"


def test_truncated_image_is_validation_error(engine, jpeg_bytes):
    with pytest.raises(TransformationError):
        engine.apply(jpeg_bytes[: len(jpeg_bytes) // 3], TransformationSpec())


def test_grayscale(engine, make_image):
    source = make_image(20, 20, "PNG")
    result = engine.apply(source, TransformationSpec(filters=FilterSpec(grayscale=True), format="png"))
    assert decode(result.data).mode == "L"


def test_grayscale_keeps_alpha_for_png(engine, make_image):
    source = make_image(20, 20, "PNG", mode="RGBA")
    result = engine.apply(source, TransformationSpec(filters=FilterSpec(grayscale=True), format="png"))
    assert decode(result.data).mode == "LA"


def test_blur_keeps_dimensions_and_changes_pixels(engine):
    img = Image.new("RGB", (40, 40), (0, 0, 0))
    for x in range(20, 40):
        for y in range(40):
            img.putpixel((x, y), (255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")

    result = engine.apply(buf.getvalue(), TransformationSpec(filters=FilterSpec(blur=3.0), format="png"))
    out = decode(result.data).convert("RGB")

    assert out.size == (40, 40)
    edge = out.getpixel((20, 20))
    assert 0 < edge[0] < 255


def test_alpha_source_encodes_as_jpeg(engine, make_image):
    source = make_image(30, 30, "PNG", mode="RGBA")
    result = engine.apply(source, TransformationSpec())
    out = decode(result.data)
    assert out.format == "JPEG"
    assert out.mode == "RGB"


def test_palette_source_is_resized(engine, make_image):
    source = make_image(64, 64, "PNG", mode="P")
    result = engine.apply(source, TransformationSpec(resize=ResizeSpec(width=16, height=8), format="png"))
    assert decode(result.data).size == (16, 8)


def test_full_pipeline_order(engine, make_image):
    source = make_image(200, 100, "JPEG")
    spec = TransformationSpec(
        resize=ResizeSpec(width=100, height=50),
        crop=CropSpec(x=0, y=0, width=40, height=50),
        rotate=90,
        filters=FilterSpec(grayscale=True, blur=1.5),
        format="png",
    )
    result = engine.apply(source, spec)
    out = decode(result.data)
    assert out.size == (50, 40)
    assert out.mode == "L"
    assert result.mime_type == "image/png"


def test_negative_blur_rejected_by_engine():
    with pytest.raises(TransformationError):
        TransformationEngine.blur(Image.new("RGB", (4, 4)), -1)
