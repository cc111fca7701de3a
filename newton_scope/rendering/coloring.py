"""
Color mapping of iteration counts.

The tile renderer only produces raw iteration counts; this module turns a
2-D array of counts into an RGB image, either with the built-in ``jet``
ramp or with any matplotlib colormap.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib
import numpy as np

logger = logging.getLogger(__name__)

PaletteFunc = Callable[[np.ndarray], np.ndarray]


def normalize_iterations(iterations: np.ndarray, max_iter: int) -> np.ndarray:
    """Map iteration counts onto [0, 1]."""
    if max_iter <= 0:
        return np.zeros(np.shape(iterations), dtype=np.float64)
    return np.clip(np.asarray(iterations, dtype=np.float64) / max_iter, 0.0, 1.0)


def jet(t: np.ndarray) -> np.ndarray:
    """
    Jet-like ramp from blue through green to red.

    Channel ``n`` (3 for red, 2 for green, 1 for blue) is
    ``clamp(1.5 - |4t - n|, 0, 1)``.

    Returns:
        uint8 array with a trailing RGB axis
    """
    t = np.asarray(t, dtype=np.float64)[..., np.newaxis]
    centers = np.array([3.0, 2.0, 1.0])
    rgb = np.clip(1.5 - np.abs(4.0 * t - centers), 0.0, 1.0)
    return (rgb * 255.0).astype(np.uint8)


def matplotlib_palette(name: str) -> PaletteFunc:
    """Wrap a matplotlib colormap as a palette function."""
    cmap = matplotlib.colormaps[name]

    def apply(t: np.ndarray) -> np.ndarray:
        rgba = cmap(np.asarray(t, dtype=np.float64))
        return (rgba[..., :3] * 255.0).astype(np.uint8)

    return apply


class ColoringEngine:
    """Palette registry and image colouring."""

    def __init__(self):
        self.palettes: Dict[str, PaletteFunc] = {'jet': jet}

    def add_palette(self, name: str, palette: PaletteFunc) -> None:
        """Register a palette function under ``name``."""
        self.palettes[name] = palette

    def get_palette(self, name: str) -> PaletteFunc:
        """
        Look up a palette by name.

        Built-in palettes win; any other name is resolved as a matplotlib
        colormap.
        """
        if name in self.palettes:
            return self.palettes[name]
        if name in matplotlib.colormaps:
            logger.debug(f"Using matplotlib colormap: {name}")
            return matplotlib_palette(name)
        raise ValueError(f"Unknown palette: {name}")

    def render_color_image(self, iterations: np.ndarray, max_iter: int,
                           palette: str = 'jet',
                           inside_color: Optional[Tuple[int, int, int]] = None) -> np.ndarray:
        """
        Convert iteration counts to an RGB image.

        Args:
            iterations: 2-D array of iteration counts
            max_iter: Iteration bound used for the render
            palette: Palette name
            inside_color: Optional RGB colour for pixels that hit ``max_iter``

        Returns:
            uint8 array of shape (height, width, 3)
        """
        palette_func = self.get_palette(palette)
        rgb = palette_func(normalize_iterations(iterations, max_iter))

        if inside_color is not None:
            rgb[np.asarray(iterations) >= max_iter] = inside_color

        return rgb

    def list_palettes(self) -> List[str]:
        """Get list of available palette names."""
        return sorted(self.palettes) + sorted(
            name for name in matplotlib.colormaps if name not in self.palettes)
