import pytest
from PIL import Image

from gallery_pipeline.orientation import correct_orientation, read_orientation
from conftest import write_image


RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


@pytest.fixture
def marked():
    # 3x2 image with a distinct top-left and top-right pixel
    im = Image.new("RGB", (3, 2), WHITE)
    im.putpixel((0, 0), RED)
    im.putpixel((2, 0), GREEN)
    im.putpixel((0, 1), BLUE)
    return im


def test_identity_codes(marked):
    for code in (0, 1, 9):
        out = correct_orientation(marked, code)
        assert out.tobytes() == marked.tobytes()


def test_rotate_180_twice_is_identity(marked):
    once = correct_orientation(marked, 3)
    assert once.tobytes() != marked.tobytes()
    assert correct_orientation(once, 3).tobytes() == marked.tobytes()


def test_flip_twice_is_identity(marked):
    once = correct_orientation(marked, 2)
    assert once.getpixel((2, 0)) == RED
    assert correct_orientation(once, 2).tobytes() == marked.tobytes()


def test_flip_vertical(marked):
    out = correct_orientation(marked, 4)
    assert out.getpixel((0, 1)) == RED
    assert out.getpixel((0, 0)) == BLUE


def test_rotate_clockwise(marked):
    out = correct_orientation(marked, 6)
    assert out.size == (2, 3)
    # top-left moves to top-right
    assert out.getpixel((1, 0)) == RED
    assert out.getpixel((1, 2)) == GREEN


def test_rotate_counter_clockwise(marked):
    out = correct_orientation(marked, 8)
    assert out.size == (2, 3)
    # top-left moves to bottom-left
    assert out.getpixel((0, 2)) == RED
    assert out.getpixel((0, 0)) == GREEN


def test_rotate_then_flip(marked):
    five = correct_orientation(marked, 5)
    assert five.size == (2, 3)
    assert five.getpixel((1, 2)) == RED

    seven = correct_orientation(marked, 7)
    assert seven.size == (2, 3)
    assert seven.getpixel((0, 0)) == RED


def test_input_is_not_modified(marked):
    before = marked.tobytes()
    correct_orientation(marked, 2)
    correct_orientation(marked, 6)
    assert marked.tobytes() == before


def test_read_orientation(tmp_path):
    tagged = write_image(tmp_path / "tagged.jpg", (10, 10), orientation=6)
    plain = write_image(tmp_path / "plain.jpg", (10, 10))
    assert read_orientation(tagged) == 6
    assert read_orientation(plain) == 0


def test_read_orientation_unreadable(tmp_path):
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"not an image")
    assert read_orientation(bad) == 0
    assert read_orientation(tmp_path / "missing.jpg") == 0


def test_two_step_correction_leaves_input_usable(marked):
    out = correct_orientation(marked, 5)
    assert out.size == (2, 3)
    assert out.getpixel((1, 2)) == RED
    assert marked.getpixel((0, 0)) == RED
