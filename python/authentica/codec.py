"""Image codec adapter: decoding uploads and lossy re-encoding for ELA."""
import io
import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .exceptions import CodecFailure, MalformedImage
from .types import RasterImage

logger = logging.getLogger(__name__)

JPEG_FORMATS = frozenset({'jpeg', 'jpg', 'mpo'})


def detect_format(data: bytes) -> Optional[str]:
    """Detect an image container from its magic numbers."""
    if len(data) < 4:
        return None

    if data[0:2] == b'\xff\xd8':
        return 'jpeg'
    if data[0:4] == b'\x89PNG':
        return 'png'
    if data[0:4] == b'RIFF' and len(data) > 11 and data[8:12] == b'WEBP':
        return 'webp'
    if data[0:4] == b'GIF8':
        return 'gif'
    if data[0:2] in (b'II', b'MM'):
        return 'tiff'
    if data[0:2] == b'BM':
        return 'bmp'

    return None


def is_block_coded(source_format: Optional[str]) -> bool:
    """True when the source format uses 8x8 DCT blocks."""
    return bool(source_format) and source_format.lower() in JPEG_FORMATS


def _to_supported_mode(img: Image.Image) -> Image.Image:
    if img.mode in ('L', 'LA', 'RGB', 'RGBA'):
        return img
    if img.mode in ('1', 'I', 'I;16', 'F'):
        return img.convert('L')
    if img.mode == 'P' and 'transparency' in img.info:
        return img.convert('RGBA')
    if img.mode in ('PA', 'RGBa', 'La'):
        return img.convert('RGBA')
    return img.convert('RGB')


def decode_image(data: bytes) -> RasterImage:
    """Decode compressed image bytes into a :class:`RasterImage`.

    Raises:
        MalformedImage: the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            source_format = (img.format or detect_format(data) or '').lower() or None
            img.load()
            img = _to_supported_mode(img)
            arr = np.asarray(img, dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise MalformedImage(f"Could not decode image: {e}") from e

    return RasterImage.from_array(arr, source_format=source_format)


def encodable_view(image: RasterImage) -> np.ndarray:
    """The part of the raster a JPEG encoder can represent (alpha dropped)."""
    arr = image.array()
    if image.channels == 2:
        return arr[:, :, :1]
    if image.channels == 4:
        return arr[:, :, :3]
    return arr


@contextmanager
def scratch_file(suffix: str = '.jpg') -> Iterator[str]:
    """Yield a temporary file path that is removed on every exit path."""
    tmp = tempfile.NamedTemporaryFile(suffix=suffix, delete=False)
    try:
        tmp.close()
        yield tmp.name
    finally:
        try:
            os.unlink(tmp.name)
        except OSError:
            pass


def jpeg_round_trip(image: RasterImage, quality: int = 95) -> Tuple[np.ndarray, np.ndarray]:
    """Re-encode the raster as JPEG and decode it again.

    The encoded bytes go through a scratch file that is deleted whether
    or not the round trip succeeds.

    Returns:
        (original, recompressed) uint8 arrays with identical channel layout.

    Raises:
        CodecFailure: the encoder or decoder failed.
    """
    original = encodable_view(image)
    mode = 'L' if original.shape[2] == 1 else 'RGB'
    source = original[:, :, 0] if mode == 'L' else original

    try:
        with scratch_file('.jpg') as path:
            Image.fromarray(np.ascontiguousarray(source)).save(
                path, 'JPEG', quality=quality
            )
            with Image.open(path) as reloaded:
                recompressed = np.asarray(reloaded.convert(mode), dtype=np.uint8)
    except (OSError, ValueError) as e:
        raise CodecFailure(f"JPEG round trip at quality {quality} failed: {e}") from e

    if recompressed.ndim == 2:
        recompressed = recompressed[:, :, np.newaxis]
    return original, recompressed
