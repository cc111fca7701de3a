"""
Image export for rendered Newton fractals.

Supports PNG (with metadata text chunks), JPEG (with a companion JSON
file), TIFF, base64-encoded PNG for transport to a UI, and raw iteration
arrays as ``.npy`` files.
"""

import base64
import io
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image, PngImagePlugin

from .. import __version__

logger = logging.getLogger(__name__)


@dataclass
class RenderMetadata:
    """Metadata for Newton fractal renders."""

    formula: str
    center: Tuple[float, float]  # real, imag
    zoom_level: int
    size: int
    max_iterations: int
    coeff: Tuple[float, float]  # real, imag
    palette: str

    render_time_seconds: float
    pixels_evaluated: int = 0

    timestamp: str = ""
    software_version: str = __version__
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        data = dict(data)
        for key in ('center', 'coeff'):
            if key in data:
                data[key] = tuple(data[key])
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


def _prepare_image_array(image_array: np.ndarray) -> np.ndarray:
    """Validate an RGB array and convert it to 8 bits per channel."""
    if image_array.ndim != 3 or image_array.shape[2] != 3:
        raise ValueError(f"Expected RGB image array (H, W, 3), got {image_array.shape}")

    if image_array.dtype != np.uint8:
        if np.issubdtype(image_array.dtype, np.floating):
            image_array = (np.clip(image_array, 0.0, 1.0) * 255).astype(np.uint8)
        else:
            image_array = np.clip(image_array, 0, 255).astype(np.uint8)

    return image_array


def encode_png_base64(image_array: np.ndarray) -> str:
    """Encode an RGB array as a base64 PNG string."""
    buf = io.BytesIO()
    Image.fromarray(_prepare_image_array(image_array)).save(buf, "PNG")
    return base64.b64encode(buf.getvalue()).decode('ascii')


class ImageExporter:
    """Image export with metadata support."""

    def __init__(self):
        self.supported_formats = {
            '.png': self._save_png,
            '.tiff': self._save_tiff,
            '.tif': self._save_tiff,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
        }

    def save_image(self, image_array: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata] = None,
                   quality: int = 95) -> Path:
        """
        Save RGB image array to file with metadata.

        Args:
            image_array: RGB image array (height, width, 3)
            filepath: Output file path
            metadata: Render metadata to embed
            quality: JPEG quality (1-100)

        Returns:
            Path of the written file
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        pil_image = Image.fromarray(_prepare_image_array(image_array))
        self.supported_formats[suffix](pil_image, filepath, metadata, quality)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]})")
        return filepath

    def _save_png(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as PNG with metadata."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Title", f"Newton fractal: {metadata.formula}")
            pnginfo.add_text("Software", f"newton-scope v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text("NewtonMetadata", metadata.to_json())

        pil_image.save(filepath, "PNG", pnginfo=pnginfo)

    def _save_tiff(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as TIFF, with the description tag holding the metadata."""
        save_kwargs = {'format': 'TIFF', 'compression': 'tiff_lzw'}
        if metadata:
            save_kwargs['description'] = metadata.to_json()
        pil_image.save(filepath, **save_kwargs)

    def _save_jpeg(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as JPEG; metadata goes to a companion JSON file."""
        pil_image.save(filepath, "JPEG", quality=quality, optimize=True)

        if metadata:
            json_path = filepath.with_suffix('.json')
            json_path.write_text(metadata.to_json())
            logger.info(f"Saved metadata: {json_path}")

    def save_raw_data(self, iterations: np.ndarray, filepath: Path,
                      metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Save raw iteration counts as a NumPy array.

        Args:
            iterations: Iteration array to save
            filepath: Output file path (.npy)
            metadata: Metadata to save alongside

        Returns:
            Path of the written array
        """
        filepath = Path(filepath)
        if filepath.suffix.lower() != '.npy':
            filepath = filepath.with_suffix('.npy')

        np.save(filepath, iterations)

        if metadata:
            filepath.with_suffix('.json').write_text(metadata.to_json())

        logger.info(f"Saved raw data: {filepath}")
        return filepath

    def load_raw_data(self, filepath: Path) -> Tuple[np.ndarray, Optional[RenderMetadata]]:
        """
        Load raw iteration counts and metadata.

        Args:
            filepath: Input file path (.npy)

        Returns:
            Tuple of (iterations, metadata)
        """
        filepath = Path(filepath)
        iterations = np.load(filepath)

        metadata = None
        metadata_path = filepath.with_suffix('.json')
        if metadata_path.exists():
            metadata = RenderMetadata.from_json(metadata_path.read_text())

        return iterations, metadata
