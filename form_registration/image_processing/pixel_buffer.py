"""
Read-only pixel access for scanned pages.

This module wraps a decoded raster image as an immutable RGBA buffer with
grayscale queries, plus the loaders and encoders used at the edges of the
pipeline (bytes, files, PIL images).
"""

import hashlib
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from ..exceptions import ImageDecodeError

# ITU-R BT.601 luma weights applied to R, G, B
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)
LUMA_MILLI_WEIGHTS = np.array([299, 587, 114], dtype=np.int32)


def _to_rgba(pixels: np.ndarray) -> np.ndarray:
    """Convert a grayscale, RGB or RGBA array to a contiguous RGBA uint8 copy."""
    if pixels.dtype != np.uint8:
        raise ValueError(f"Pixel data must be uint8, got {pixels.dtype}")

    # cv2 rejects read-only and non-contiguous inputs
    pixels = np.array(pixels, copy=True, order="C")

    if pixels.ndim == 2:
        return cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGBA)
    if pixels.ndim == 3 and pixels.shape[2] == 1:
        return cv2.cvtColor(np.ascontiguousarray(pixels[:, :, 0]), cv2.COLOR_GRAY2RGBA)
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        return cv2.cvtColor(pixels, cv2.COLOR_RGB2RGBA)
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return pixels

    raise ValueError(f"Unsupported pixel array shape: {pixels.shape}")


class PixelBuffer:
    """
    Immutable RGBA image with random-access grayscale queries.

    Arrays passed in are interpreted as grayscale (H x W), RGB (H x W x 3)
    or RGBA (H x W x 4). The buffer keeps its own read-only copy, so it can
    be shared freely between detection passes and worker threads.
    """

    def __init__(self, pixels: np.ndarray, identity: Optional[str] = None):
        """
        Initialize the buffer.

        Args:
            pixels: uint8 pixel array in grayscale, RGB or RGBA layout
            identity: Stable identifier of the source image; a content hash
                is used when omitted
        """
        rgba = _to_rgba(np.asarray(pixels))
        rgba.flags.writeable = False
        self._pixels = rgba
        self._identity = identity
        self._luminance: Optional[np.ndarray] = None
        self._luma_milli: Optional[np.ndarray] = None

    @property
    def pixels(self) -> np.ndarray:
        """Read-only H x W x 4 RGBA array."""
        return self._pixels

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        """(width, height) of the image."""
        return self.width, self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def identity(self) -> str:
        """
        Stable identifier used as the corner-cache key.

        Defaults to a SHA-256 digest over the image size and pixel bytes, so
        two buffers decoded from the same page share an identity.
        """
        if self._identity is None:
            digest = hashlib.sha256()
            digest.update(f"{self.width}x{self.height}:".encode("ascii"))
            digest.update(self._pixels.tobytes())
            self._identity = digest.hexdigest()
        return self._identity

    def luminance(self) -> np.ndarray:
        """
        Grayscale plane computed as 0.299R + 0.587G + 0.114B.

        Returns:
            Read-only float64 array of shape (height, width)
        """
        if self._luminance is None:
            lum = self._pixels[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS
            lum.flags.writeable = False
            self._luminance = lum
        return self._luminance

    def luma_milli(self) -> np.ndarray:
        """
        Exact luminance scaled by 1000: 299R + 587G + 114B as integers.

        Threshold tests compare this plane against ``threshold * 1000`` so
        that a neutral gray equal to the threshold is neither dark nor light,
        which the float plane cannot guarantee.
        """
        if self._luma_milli is None:
            rgb = self._pixels[:, :, :3].astype(np.int32)
            milli = rgb @ LUMA_MILLI_WEIGHTS
            milli.flags.writeable = False
            self._luma_milli = milli
        return self._luma_milli

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def luminance_at(self, x: int, y: int) -> float:
        return float(self.luminance()[y, x])

    def rgba_at(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def blank(cls, width: int, height: int, identity: Optional[str] = None) -> "PixelBuffer":
        """Fully transparent buffer of the given size."""
        return cls(np.zeros((height, width, 4), dtype=np.uint8), identity=identity)

    @classmethod
    def from_bytes(cls, image_bytes: bytes, identity: Optional[str] = None) -> "PixelBuffer":
        """
        Decode encoded image bytes (PNG, JPEG, ...).

        Args:
            image_bytes: Encoded image data
            identity: Optional stable identifier

        Returns:
            PixelBuffer with the decoded pixels

        Raises:
            ImageDecodeError: If OpenCV cannot decode the data
        """
        nparr = np.frombuffer(image_bytes, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
        if img is None:
            raise ImageDecodeError("Failed to decode image bytes")

        if img.dtype == np.uint16:
            img = (img >> 8).astype(np.uint8)

        # OpenCV decodes to BGR / BGRA
        if img.ndim == 3 and img.shape[2] == 3:
            img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        elif img.ndim == 3 and img.shape[2] == 4:
            img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)

        return cls(img, identity=identity)

    @classmethod
    def from_file(cls, path: Union[str, Path], identity: Optional[str] = None) -> "PixelBuffer":
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ImageDecodeError(f"Cannot read image file {path}: {e}") from e
        return cls.from_bytes(data, identity=identity)

    @classmethod
    def from_pil(cls, image: Image.Image, identity: Optional[str] = None) -> "PixelBuffer":
        return cls(np.asarray(image.convert("RGBA")), identity=identity)

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_bytes(self, format: str = "PNG") -> bytes:
        """
        Encode the buffer to image bytes.

        Args:
            format: Output format (PNG, JPEG, ...). Formats without alpha
                drop the alpha channel.

        Returns:
            Encoded image bytes
        """
        ext = format.lower()
        if ext in ("jpg", "jpeg", "bmp"):
            bgr = cv2.cvtColor(self._pixels.copy(), cv2.COLOR_RGBA2BGR)
        else:
            bgr = cv2.cvtColor(self._pixels.copy(), cv2.COLOR_RGBA2BGRA)
        is_success, buffer = cv2.imencode(f".{ext}", bgr)
        if not is_success:
            raise ValueError(f"Failed to encode image as {format}")
        return buffer.tobytes()

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.array(self._pixels))

    def save(self, path: Union[str, Path]) -> None:
        """Write the buffer to disk; the format follows the file suffix."""
        path = Path(path)
        fmt = path.suffix.lstrip(".") or "png"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_bytes(fmt))
