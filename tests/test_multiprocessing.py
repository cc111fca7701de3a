import numpy as np
import pytest

from newton_scope.acceleration.multiprocessing import (
    ParallelTileRenderer,
    SequentialTileRenderer,
    TileRenderError,
    TileResult,
    assemble_tiles,
    create_tile_grid,
    get_optimal_process_count,
    process_tile,
    render_sequential,
)
from newton_scope.core.boundary_trace import render_brute_force
from newton_scope.core.escape_time import RenderContext, TileRequest
from newton_scope.core.functions import CallableFunction


def failing_deriv(z):
    raise RuntimeError("derivative unavailable")


def test_tile_grid_covers_rectangle():
    tiles = create_tile_grid(100, 70, tile_size=32)

    assert len(tiles) == 4 * 3
    assert [t.tile_id for t in tiles] == list(range(12))
    covered = np.zeros((70, 100), dtype=int)
    for t in tiles:
        covered[t.y_start:t.y_end, t.x_start:t.x_end] += 1
    assert np.all(covered == 1)

    last = tiles[-1]
    assert (last.width, last.height) == (4, 6)


def test_tile_grid_with_offset():
    tiles = create_tile_grid(10, 10, tile_size=8, x_offset=20, y_offset=30)
    assert tiles[0].to_request() == TileRequest(20, 30, 8, 8)
    assert tiles[-1].to_request() == TileRequest(28, 38, 2, 2)


def test_tile_grid_rejects_bad_tile_size():
    with pytest.raises(ValueError):
        create_tile_grid(10, 10, tile_size=0)


def test_process_tile_shape(cubic_context):
    tiles = create_tile_grid(20, 12, tile_size=16)
    result = process_tile(tiles[1], cubic_context)

    assert result.iterations.shape == (12, 4)
    assert result.x_start == 16
    assert result.stats.num_pixels == 48


def test_assemble_tiles():
    results = [
        TileResult(0, np.full((2, 3), 1, dtype=np.uint16), 10, 5, None),
        TileResult(1, np.full((2, 1), 2, dtype=np.uint16), 13, 5, None),
    ]
    image = assemble_tiles(results, 4, 2, x_offset=10, y_offset=5)

    assert image.dtype == np.uint16
    assert image.tolist() == [[1, 1, 1, 2], [1, 1, 1, 2]]


def test_sequential_matches_single_tile_render(cubic_context):
    tiled = render_sequential(cubic_context, 64, 64, tile_size=16)

    assert tiled.shape == (64, 64)
    assert tiled.max() <= cubic_context.max_iter
    # tiles are rendered independently, their edges are exact
    direct = render_brute_force(TileRequest(0, 0, 64, 64), cubic_context).reshape(64, 64)
    assert np.array_equal(tiled[::16], direct[::16])
    assert np.array_equal(tiled[:, 15::16], direct[:, 15::16])


@pytest.mark.parametrize('executor', ['thread', 'process'])
def test_parallel_matches_sequential(cubic_context, executor):
    renderer = ParallelTileRenderer(num_processes=2, tile_size=24, executor=executor)
    progress = []

    result = renderer.render(cubic_context, 64, 48, x_offset=4, y_offset=8,
                             progress_callback=lambda done, total: progress.append((done, total)))
    expected = render_sequential(cubic_context, 64, 48, tile_size=24, x_offset=4, y_offset=8)

    assert np.array_equal(result, expected)
    assert len(renderer.last_stats) == 6
    assert progress[-1] == (6, 6)


def test_worker_failure_raises_tile_error():
    function = CallableFunction(lambda z: z, failing_deriv, name='broken')
    context = RenderContext(center=0j, size=8.0, range=2.0, max_iter=5, function=function)
    renderer = ParallelTileRenderer(num_processes=2, tile_size=4, executor='thread')

    with pytest.raises(TileRenderError) as excinfo:
        renderer.render(context, 8, 8)

    assert isinstance(excinfo.value.cause, RuntimeError)
    assert 0 <= excinfo.value.tile_id < 4


def test_renderer_rejects_unknown_executor():
    with pytest.raises(ValueError):
        ParallelTileRenderer(executor='gpu')


def test_optimal_process_count():
    assert get_optimal_process_count() >= 1
    assert ParallelTileRenderer(num_processes=0).num_processes == 1


def test_sequential_renderer_records_stats(cubic_context):
    renderer = SequentialTileRenderer(tile_size=16)
    progress = []

    result = renderer.render(cubic_context, 40, 20,
                             progress_callback=lambda done, total: progress.append((done, total)))

    assert np.array_equal(result, render_sequential(cubic_context, 40, 20, tile_size=16))
    assert len(renderer.last_stats) == 6
    assert sum(s.num_pixels for s in renderer.last_stats) == 40 * 20
    assert all(s.evaluations > 0 for s in renderer.last_stats)
    assert progress == [(n, 6) for n in range(1, 7)]
