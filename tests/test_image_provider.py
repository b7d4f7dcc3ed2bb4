import pytest

pytest.importorskip("pyvips")

from pathlib import Path

import numpy as np
import pyvips

from termleek.errors import ImageDecodeError, ImageNotFoundError, ScaleError
from termleek.image_engine import DisplayedImage, ImageProvider, SourceImage


def _write_image(path: Path, w: int, h: int, bands: int = 3) -> str:
    img = pyvips.Image.black(w, h) + 40
    for i in range(1, bands):
        img = img.bandjoin(pyvips.Image.black(w, h) + 40 * (i + 1))
    img = img.cast("uchar")
    img.write_to_file(str(path))
    return str(path)


def test_load_stretches_to_box_without_aspect(tmp_path: Path):
    path = _write_image(tmp_path / "bg.png", 400, 300)

    source = ImageProvider().load(path, 680, 370, preserve_aspect_ratio=False)

    assert isinstance(source, SourceImage)
    assert source.size == (680, 370)
    assert source.pixels.dtype == np.uint8
    assert source.pixels.shape == (370, 680, 3)
    assert source.path == path


def test_load_fits_inside_box_with_aspect(tmp_path: Path):
    path = _write_image(tmp_path / "bg.png", 400, 200)

    source = ImageProvider().load(path, 680, 370, preserve_aspect_ratio=True)

    # 2:1 source inside a 680x370 box is limited by width
    assert source.width == 680
    assert source.height == 340


def test_load_flattens_alpha(tmp_path: Path):
    path = _write_image(tmp_path / "rgba.png", 64, 32, bands=4)

    source = ImageProvider().load(path, 64, 32, preserve_aspect_ratio=False)

    assert source.pixels.shape == (32, 64, 3)


def test_rescale_is_exact_and_leaves_source_untouched(tmp_path: Path):
    provider = ImageProvider()
    source = provider.load(_write_image(tmp_path / "bg.png", 400, 300), 680, 370, False)
    before = source.pixels.copy()

    for w, h in [(800, 400), (341, 186), (1921, 1079), (680, 370)]:
        shown = provider.rescale(source, w, h)
        assert isinstance(shown, DisplayedImage)
        assert shown.size == (w, h)
        assert shown.pixels is not source.pixels

    assert source.size == (680, 370)
    assert np.array_equal(source.pixels, before)
    assert not source.pixels.flags.writeable


def test_rescale_keeps_solid_colour(tmp_path: Path):
    provider = ImageProvider()
    source = provider.load(_write_image(tmp_path / "bg.png", 50, 50), 100, 100, False)

    shown = provider.rescale(source, 333, 77)

    assert shown.size == (333, 77)
    assert shown.pixels[38, 166, 0] == source.pixels[50, 50, 0]


def test_rescale_rejects_empty_target(tmp_path: Path):
    provider = ImageProvider()
    source = provider.load(_write_image(tmp_path / "bg.png", 10, 10), 10, 10, False)

    with pytest.raises(ScaleError):
        provider.rescale(source, 0, 100)


def test_missing_file(tmp_path: Path):
    with pytest.raises(ImageNotFoundError):
        ImageProvider().load(str(tmp_path / "nope.png"), 10, 10, False)


def test_undecodable_file(tmp_path: Path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"definitely not an image")

    with pytest.raises(ImageDecodeError):
        ImageProvider().load(str(bad), 10, 10, False)


def test_to_qimage_matches_buffer(tmp_path: Path):
    provider = ImageProvider()
    source = provider.load(_write_image(tmp_path / "bg.png", 20, 10), 20, 10, False)

    qimg = provider.display(source).to_qimage()

    assert (qimg.width(), qimg.height()) == (20, 10)
    assert qimg.pixelColor(3, 3).red() == int(source.pixels[3, 3, 0])
