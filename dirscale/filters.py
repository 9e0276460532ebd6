"""
Resampling filters used to resize images.

Four of the filters map directly onto Pillow's resampling modes. Pillow has no
Gaussian resampler, so that one is a separable numpy implementation with a
sigma 0.5 kernel.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

GAUSSIAN_SIGMA = 0.5
GAUSSIAN_SUPPORT = 3.0

# Modes the numpy resampler can weight directly
_ARRAY_MODES = {"L", "LA", "RGB", "RGBA", "I", "F"}


class FilterKind(str, Enum):
    """Closed set of supported resampling filters."""

    NEAREST = "nearest"
    TRIANGLE = "triangle"
    GAUSSIAN = "gaussian"
    CATMULL_ROM = "catmull-rom"
    LANCZOS3 = "lanczos3"


_FILTER_ALIASES: Dict[str, FilterKind] = {
    "near": FilterKind.NEAREST,
    "nearest": FilterKind.NEAREST,
    "tri": FilterKind.TRIANGLE,
    "triangle": FilterKind.TRIANGLE,
    "gauss": FilterKind.GAUSSIAN,
    "gaussian": FilterKind.GAUSSIAN,
    "cmr": FilterKind.CATMULL_ROM,
    "catmull-rom": FilterKind.CATMULL_ROM,
    "catmullrom": FilterKind.CATMULL_ROM,
    "lcz": FilterKind.LANCZOS3,
    "lanczos3": FilterKind.LANCZOS3,
    "lanczos": FilterKind.LANCZOS3,
}

_PILLOW_RESAMPLING = {
    FilterKind.NEAREST: Image.Resampling.NEAREST,
    FilterKind.TRIANGLE: Image.Resampling.BILINEAR,
    FilterKind.CATMULL_ROM: Image.Resampling.BICUBIC,
    FilterKind.LANCZOS3: Image.Resampling.LANCZOS,
}


def parse_filter(name: Optional[str]) -> FilterKind:
    """
    Resolve a filter code or name, falling back to Gaussian.

    Args:
        name: Short code ("gauss", "near", "tri", "cmr", "lcz") or long name,
            case-insensitive

    Returns:
        The matching FilterKind, or FilterKind.GAUSSIAN if unrecognised
    """
    key = (name or "").strip().lower()
    kind = _FILTER_ALIASES.get(key)
    if kind is None:
        logger.debug("Unknown filter %r, using gaussian", name)
        return FilterKind.GAUSSIAN
    return kind


def resize_image(
    image: Image.Image, size: Tuple[int, int], kind: FilterKind
) -> Image.Image:
    """
    Resize ``image`` to exactly ``size`` (width, height) with the given filter.

    Palette and bilevel images are expanded before any interpolating filter
    so the interpolation happens on real colour values.
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")

    if kind is FilterKind.GAUSSIAN:
        return gaussian_resize(image, size)

    if kind is not FilterKind.NEAREST and image.mode in ("1", "P", "PA"):
        image = _to_array_mode(image)
    return image.resize(size, resample=_PILLOW_RESAMPLING[kind])


def gaussian_resize(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Resize with a separable Gaussian kernel (sigma 0.5, support 3)."""
    width, height = size
    image = _to_array_mode(image)
    dtype = np.float64 if image.mode == "I" else np.float32
    data = np.asarray(image, dtype=dtype)

    if width != image.width:
        indices, weights = _axis_weights(image.width, width)
        data = _resample_axis(data, indices, weights, axis=1)
    if height != image.height:
        indices, weights = _axis_weights(image.height, height)
        data = _resample_axis(data, indices, weights, axis=0)

    return Image.fromarray(_restore_dtype(data, image.mode))


def _gaussian(x: np.ndarray) -> np.ndarray:
    return np.exp(-(x**2) / (2.0 * GAUSSIAN_SIGMA**2)) / (
        math.sqrt(2.0 * math.pi) * GAUSSIAN_SIGMA
    )


def _axis_weights(in_size: int, out_size: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute per-output-sample source indices and normalised weights.

    Returns:
        (indices, weights), both shaped (out_size, taps). Indices are clamped
        into range; taps that fall outside the source carry zero weight.
    """
    ratio = in_size / out_size
    # Widen the kernel when shrinking so every source pixel contributes
    sratio = max(ratio, 1.0)
    support = GAUSSIAN_SUPPORT * sratio

    centers = (np.arange(out_size, dtype=np.float64) + 0.5) * ratio
    left = np.floor(centers - support).astype(np.int64)
    taps = int(math.ceil(2.0 * support)) + 1
    positions = left[:, None] + np.arange(taps, dtype=np.int64)[None, :]

    x = (positions + 0.5 - centers[:, None]) / sratio
    weights = _gaussian(x)
    outside = (positions < 0) | (positions >= in_size) | (np.abs(x) >= GAUSSIAN_SUPPORT)
    weights[outside] = 0.0
    weights /= weights.sum(axis=1, keepdims=True)

    return np.clip(positions, 0, in_size - 1), weights


def _resample_axis(
    data: np.ndarray, indices: np.ndarray, weights: np.ndarray, axis: int
) -> np.ndarray:
    shape = [1] * data.ndim
    shape[axis] = -1
    result = None
    for tap in range(indices.shape[1]):
        term = np.take(data, indices[:, tap], axis=axis) * weights[:, tap].reshape(
            shape
        ).astype(data.dtype)
        result = term if result is None else result + term
    return result


def _restore_dtype(data: np.ndarray, mode: str) -> np.ndarray:
    if mode == "F":
        return data.astype(np.float32)
    if mode == "I":
        info = np.iinfo(np.int32)
        return np.clip(np.rint(data), info.min, info.max).astype(np.int32)
    return np.clip(np.rint(data), 0, 255).astype(np.uint8)


def _to_array_mode(image: Image.Image) -> Image.Image:
    """Convert ``image`` to a mode whose pixels can be weighted numerically."""
    if image.mode in _ARRAY_MODES:
        return image
    if image.mode == "1":
        return image.convert("L")
    if image.mode.startswith("I;16"):
        return image.convert("I")
    if image.mode == "P":
        has_alpha = "transparency" in image.info
        return image.convert("RGBA" if has_alpha else "RGB")
    has_alpha = "A" in image.getbands() or "a" in image.getbands()
    return image.convert("RGBA" if has_alpha else "RGB")


__all__ = ["FilterKind", "parse_filter", "resize_image", "gaussian_resize"]
