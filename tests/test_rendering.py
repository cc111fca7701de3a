import json

import numpy as np
import pytest
from PIL import Image

from newton_scope.rendering.coloring import ColoringEngine, jet, normalize_iterations
from newton_scope.rendering.image_output import (
    ImageExporter,
    RenderMetadata,
    encode_png_base64,
)


@pytest.fixture
def metadata():
    return RenderMetadata(
        formula="1*z^3 - 1",
        center=(0.0, 0.0),
        zoom_level=0,
        size=4,
        max_iterations=10,
        coeff=(1.0, 0.0),
        palette='jet',
        render_time_seconds=0.5,
    )


@pytest.fixture
def image():
    return np.arange(4 * 4 * 3, dtype=np.uint8).reshape(4, 4, 3)


def test_normalize_iterations():
    counts = np.array([0, 5, 10, 20])
    assert normalize_iterations(counts, 10).tolist() == [0.0, 0.5, 1.0, 1.0]
    assert not normalize_iterations(counts, 0).any()


def test_jet_ramp():
    assert jet(0.0).tolist() == [0, 0, 127]
    assert jet(0.5).tolist() == [127, 255, 127]
    assert jet(1.0).tolist() == [127, 0, 0]
    assert jet(np.zeros((2, 3))).shape == (2, 3, 3)


def test_render_color_image():
    engine = ColoringEngine()
    counts = np.array([[0, 10], [5, 10]], dtype=np.uint16)

    rgb = engine.render_color_image(counts, 10, inside_color=(1, 2, 3))

    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    assert rgb[0, 1].tolist() == [1, 2, 3]
    assert rgb[1, 1].tolist() == [1, 2, 3]
    assert rgb[0, 0].tolist() == [0, 0, 127]


def test_matplotlib_palettes():
    engine = ColoringEngine()
    palettes = engine.list_palettes()

    assert palettes[0] == 'jet'
    assert 'viridis' in palettes
    rgb = engine.render_color_image(np.array([[0, 4]]), 4, palette='viridis')
    assert rgb.shape == (1, 2, 3)


def test_unknown_palette():
    with pytest.raises(ValueError):
        ColoringEngine().get_palette('no-such-palette')


def test_custom_palette():
    engine = ColoringEngine()
    engine.add_palette('black', lambda t: np.zeros(np.shape(t) + (3,), dtype=np.uint8))

    assert not engine.render_color_image(np.ones((3, 3)), 2, palette='black').any()


def test_metadata_json(metadata):
    restored = RenderMetadata.from_json(metadata.to_json())

    assert restored == metadata
    assert restored.center == (0.0, 0.0)
    assert metadata.timestamp


def test_save_png(tmp_path, image, metadata):
    path = ImageExporter().save_image(image, tmp_path / 'out.png', metadata)

    with Image.open(path) as img:
        assert np.array_equal(np.asarray(img), image)
        assert RenderMetadata.from_json(img.text['NewtonMetadata']) == metadata


def test_save_jpeg_writes_companion_json(tmp_path, image, metadata):
    ImageExporter().save_image(image, tmp_path / 'out.jpg', metadata, quality=80)

    assert (tmp_path / 'out.jpg').exists()
    assert json.loads((tmp_path / 'out.json').read_text())['formula'] == "1*z^3 - 1"


def test_save_tiff(tmp_path, image):
    ImageExporter().save_image(image, tmp_path / 'out.tif')

    with Image.open(tmp_path / 'out.tif') as img:
        assert img.size == (4, 4)


def test_save_float_image(tmp_path):
    path = ImageExporter().save_image(np.ones((2, 2, 3)), tmp_path / 'white.png')

    with Image.open(path) as img:
        assert np.all(np.asarray(img) == 255)


def test_unsupported_format(tmp_path, image):
    with pytest.raises(ValueError, match='Unsupported format'):
        ImageExporter().save_image(image, tmp_path / 'out.bmp')


def test_rejects_non_rgb(tmp_path):
    with pytest.raises(ValueError):
        ImageExporter().save_image(np.zeros((4, 4)), tmp_path / 'gray.png')


def test_raw_data_roundtrip(tmp_path, metadata):
    counts = np.arange(12, dtype=np.uint16).reshape(3, 4)
    exporter = ImageExporter()

    path = exporter.save_raw_data(counts, tmp_path / 'counts.bin', metadata)
    assert path.suffix == '.npy'

    loaded, loaded_metadata = exporter.load_raw_data(path)
    assert np.array_equal(loaded, counts)
    assert loaded.dtype == np.uint16
    assert loaded_metadata == metadata


def test_encode_png_base64(image):
    import base64
    import io

    data = base64.b64decode(encode_png_base64(image))
    with Image.open(io.BytesIO(data)) as img:
        assert np.array_equal(np.asarray(img), image)
