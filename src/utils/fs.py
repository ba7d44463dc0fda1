"""Filesystem helpers for fixture input and capture output.

Provides:
    - PNG decoding into tightly packed RGBA bytes (fixture images, fake
      canvas frames)
    - YAML and JSON loading for harness config and fixture styles
    - Atomic writes: tmp file -> fsync -> rename, so a watcher comparing
      ``actual.png`` never sees a half-written file

All paths use pathlib.Path. Images are decoded with Pillow and handed
around as ``RGBAImage`` records (row-major, top-left origin, 4 bytes per
pixel), the layout the renderer's ``add_image`` expects.

Usage:
    from src.utils import fs
    icon = fs.load_rgba(fixtures_dir / "image" / "marker.png")
    fs.atomic_save_image(pixels_hw4, fixture_dir / "actual.png")
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml
from PIL import Image


@dataclass(frozen=True)
class RGBAImage:
    """Decoded image: ``width * height * 4`` bytes, top-left origin."""

    width: int
    height: int
    data: bytes

    def as_array(self) -> np.ndarray:
        """Return a read-only ``(height, width, 4)`` uint8 view of ``data``."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            self.height, self.width, 4
        )


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory (and parents) if missing, return it as a Path."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def load_rgba(path: Union[str, Path]) -> RGBAImage:
    """Decode an image file into 8-bit RGBA.

    Parameters
    ----------
    path : Union[str, Path]
        Image path (PNG in practice; any Pillow format works)

    Returns
    -------
    RGBAImage
        Decoded pixels. Palette, grayscale and RGB inputs are expanded
        to RGBA; alpha is not premultiplied.

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    with Image.open(path) as img:
        rgba = img.convert("RGBA")
        width, height = rgba.size
        data = rgba.tobytes()

    return RGBAImage(width=width, height=height, data=data)


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp -> fsync -> rename).

    Notes
    -----
    The tmp file lives in the same directory so the rename stays on
    one filesystem.
    """
    path = Path(path)
    ensure_dir(path.parent)
    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8"
) -> None:
    """Write text to file atomically."""
    atomic_write_bytes(path, text.encode(encoding))


def atomic_save_image(
    img: np.ndarray,
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save an ``(H, W, 4)`` or ``(H, W, 3)`` uint8 array atomically.

    Parameters
    ----------
    img : np.ndarray
        Pixel rows in top-left order
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save
    """
    path = Path(path)
    pil_kwargs = pil_kwargs or {}

    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    if img.ndim != 3 or img.shape[2] not in (3, 4):
        raise ValueError(f"Expected (H, W, 3|4) image, got shape {img.shape}")

    pil_img = Image.fromarray(np.ascontiguousarray(img))

    ensure_dir(path.parent)
    # Keep the real extension last so Pillow picks the format
    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)
    try:
        pil_img.save(tmp_path, **pil_kwargs)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e


def load_yaml(path: Union[str, Path]) -> Any:
    """Load YAML file safely.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def load_json(path: Union[str, Path]) -> Any:
    """Load a JSON document (fixture ``style.json``)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"JSON file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def atomic_json_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as indented JSON atomically."""
    atomic_write_text(path, json.dumps(obj, indent=2, sort_keys=True) + "\n")
