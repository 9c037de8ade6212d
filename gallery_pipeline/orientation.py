import logging
from pathlib import Path
from typing import Dict, Tuple

from PIL import Image


logger = logging.getLogger(__name__)

ORIENTATION_TAG = 0x0112

FLIP_HORIZONTAL = Image.Transpose.FLIP_LEFT_RIGHT
FLIP_VERTICAL = Image.Transpose.FLIP_TOP_BOTTOM
ROTATE_180 = Image.Transpose.ROTATE_180
ROTATE_CCW = Image.Transpose.ROTATE_90
ROTATE_CW = Image.Transpose.ROTATE_270

# Steps applied in order for each EXIF orientation code.
CORRECTIONS: Dict[int, Tuple[Image.Transpose, ...]] = {
    1: (),
    2: (FLIP_HORIZONTAL,),
    3: (ROTATE_180,),
    4: (FLIP_VERTICAL,),
    5: (ROTATE_CCW, FLIP_HORIZONTAL),
    6: (ROTATE_CW,),
    7: (ROTATE_CW, FLIP_HORIZONTAL),
    8: (ROTATE_CCW,),
}


def read_orientation(path: Path) -> int:
    """
    Returns the EXIF orientation (1-8) of the file, or 0 if it has none or
    the metadata cannot be read.
    """
    try:
        with Image.open(path) as im:
            value = im.getexif().get(ORIENTATION_TAG, 0)
        return int(value)
    except Exception as e:
        logger.debug("Could not read EXIF orientation from %s: %s", path, e)
        return 0


def correct_orientation(image: Image.Image, orientation: int) -> Image.Image:
    """
    Undo the camera orientation recorded in EXIF.

    Returns a new image when a correction applies; otherwise the input is
    returned unchanged. The input is never modified.
    """
    result = image
    for step in CORRECTIONS.get(orientation, ()):
        transposed = result.transpose(step)
        if result is not image:
            result.close()
        result = transposed
    return result
