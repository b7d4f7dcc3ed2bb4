"""Image decoding and scaling using pyvips.

Images cross this module boundary as read-only HxWx3 uint8 numpy arrays so the
rest of the application never touches pyvips objects directly.
"""

import contextlib
from typing import Any

import numpy as np

from termleek.logger import get_logger

_logger = get_logger("decoder")

# Constants
RGB_CHANNELS = 3


_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Configure pyvips caches to avoid memory growth
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


def _to_rgb_array(image: Any) -> np.ndarray:
    pyvips = _get_pyvips_module()
    with contextlib.suppress(Exception):
        image = image.colourspace("srgb")
    if image.hasalpha():
        image = image.flatten(background=[0, 0, 0])
    if image.bands > RGB_CHANNELS:
        image = image.extract_band(0, n=RGB_CHANNELS)
    elif image.bands < RGB_CHANNELS:
        image = pyvips.Image.bandjoin([image] * RGB_CHANNELS)
    if image.format != "uchar":
        image = image.cast("uchar")

    mem = image.write_to_memory()
    array = np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands)
    array = array.copy()
    if array.shape[2] != RGB_CHANNELS:
        raise RuntimeError(f"Unsupported band count after conversion: {array.shape[2]}")
    array.flags.writeable = False
    return array


def decode_image(path: str, target_width: int, target_height: int, preserve_aspect_ratio: bool) -> np.ndarray:
    """Decode ``path`` scaled into a ``target_width`` x ``target_height`` box.

    With ``preserve_aspect_ratio`` the result fits inside the box keeping the
    source ratio; otherwise it is stretched to exactly the box.
    """
    pyvips = _get_pyvips_module()
    size = "both" if preserve_aspect_ratio else "force"
    image = pyvips.Image.thumbnail(path, int(target_width), height=int(target_height), size=size)
    array = _to_rgb_array(image)
    _logger.debug(
        "decoded: path=%s box=(%s,%s) preserve=%s shape=%s",
        path,
        target_width,
        target_height,
        preserve_aspect_ratio,
        array.shape,
    )
    return array


def resize_array(array: np.ndarray, width: int, height: int) -> np.ndarray:
    """Bilinear resize of an RGB array to exactly ``width`` x ``height``."""
    pyvips = _get_pyvips_module()
    src_h, src_w, bands = array.shape
    image = pyvips.Image.new_from_memory(np.ascontiguousarray(array).tobytes(), src_w, src_h, bands, "uchar")
    image = image.resize(width / src_w, vscale=height / src_h, kernel="linear")
    # resize() rounds the output size; pin it to the exact request
    if image.width != width or image.height != height:
        image = image.gravity("north-west", width, height, extend="copy")
    return _to_rgb_array(image)
