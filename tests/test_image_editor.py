import io

import pytest
from PIL import Image, ImageChops

from client.image_editor import ImageEditor


def gradient(width=40, height=20) -> Image.Image:
    image = Image.new("RGB", (width, height))
    image.putdata([(x * 6 % 256, y * 12 % 256, (x + y) * 3 % 256) for y in range(height) for x in range(width)])
    return image


def same(a: Image.Image, b: Image.Image) -> bool:
    return a.size == b.size and ImageChops.difference(a.convert("RGB"), b.convert("RGB")).getbbox() is None


@pytest.fixture
def editor():
    editor = ImageEditor()
    editor.load(gradient())
    return editor


def test_four_quarter_turns_restore_orientation(editor):
    for _ in range(4):
        editor.rotate(90)
    assert editor.rotation == 0
    assert same(editor.render(), gradient())


def test_quarter_turn_swaps_dimensions(editor):
    editor.rotate(90)
    assert editor.render().size == (20, 40)
    editor.rotate(-90)
    assert editor.render().size == (40, 20)


def test_rotation_clockwise(editor):
    editor.rotate(90)
    expected = gradient().transpose(Image.Transpose.ROTATE_270)
    assert same(editor.render(), expected)


def test_rotation_must_be_right_angle(editor):
    with pytest.raises(ValueError):
        editor.rotate(45)


def test_double_flip_is_identity(editor):
    editor.flip_horizontal()
    assert not same(editor.render(), gradient())
    editor.flip_horizontal()
    editor.flip_vertical()
    editor.flip_vertical()
    assert same(editor.render(), gradient())


def test_filters_do_not_compound(editor):
    editor.set_adjustments(brightness=150)
    first = editor.render()
    second = editor.render()
    assert same(first, second)

    editor.set_adjustments(brightness=100)
    assert same(editor.render(), gradient())


def test_neutral_adjustments_leave_image_unchanged(editor):
    editor.set_adjustments(brightness=100, contrast=100, saturation=100, blur=0)
    assert not editor.is_modified
    assert same(editor.render(), gradient())


def test_adjustments_change_pixels(editor):
    editor.set_adjustments(saturation=0)
    red, green, blue = editor.render().getpixel((10, 10))
    assert red == green == blue

    editor.set_adjustments(saturation=100, blur=3)
    assert not same(editor.render(), gradient())


def test_out_of_range_adjustments_rejected(editor):
    with pytest.raises(ValueError):
        editor.set_adjustments(brightness=250)
    with pytest.raises(ValueError):
        editor.set_adjustments(blur=21)
    with pytest.raises(ValueError):
        editor.set_adjustments(contrast="high")


def test_reset_restores_original(editor):
    editor.rotate(180)
    editor.flip_vertical()
    editor.set_adjustments(brightness=40, contrast=160, blur=2)
    assert editor.is_modified

    editor.reset()
    assert not editor.is_modified
    assert same(editor.render(), gradient())


def test_render_without_image():
    with pytest.raises(RuntimeError):
        ImageEditor().render()


def test_load_from_bytes_and_save(tmp_path):
    buffer = io.BytesIO()
    gradient().save(buffer, format="PNG")

    editor = ImageEditor()
    editor.load(buffer.getvalue())
    editor.rotate(90)

    jpeg = editor.save()
    with Image.open(io.BytesIO(jpeg)) as saved:
        assert saved.format == "JPEG"
        assert saved.size == (20, 40)

    path = tmp_path / "source.png"
    path.write_bytes(buffer.getvalue())
    editor.load(str(path))
    assert editor.rotation == 0
    png = editor.save(format="PNG")
    with Image.open(io.BytesIO(png)) as saved:
        assert saved.format == "PNG"
        assert same(saved, gradient())
