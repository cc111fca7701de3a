from newton_scope.core.geometry import MOORE_OFFSETS, Coordinates, neighbours


def test_moore_offsets_are_the_eight_unit_vectors():
    assert len(MOORE_OFFSETS) == 8
    assert Coordinates(0, 0) not in MOORE_OFFSETS
    assert {(d.x, d.y) for d in MOORE_OFFSETS} == {
        (dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)
    }


def test_addition_allows_negative_results():
    assert Coordinates(0, 3) + Coordinates(-1, -1) == Coordinates(-1, 2)


def test_is_in_rect():
    assert Coordinates(0, 0).is_in_rect(4, 3)
    assert Coordinates(3, 2).is_in_rect(4, 3)
    assert not Coordinates(4, 2).is_in_rect(4, 3)
    assert not Coordinates(3, 3).is_in_rect(4, 3)
    assert not Coordinates(-1, 0).is_in_rect(4, 3)
    assert not Coordinates(0, -1).is_in_rect(4, 3)


def test_to_index_is_row_major():
    assert Coordinates(0, 0).to_index(5) == 0
    assert Coordinates(4, 0).to_index(5) == 4
    assert Coordinates(0, 1).to_index(5) == 5
    assert Coordinates(2, 3).to_index(5) == 17


def test_neighbours_are_clipped_to_the_tile():
    assert len(list(neighbours(Coordinates(0, 0), 3, 3))) == 3
    assert len(list(neighbours(Coordinates(1, 0), 3, 3))) == 5
    assert len(list(neighbours(Coordinates(1, 1), 3, 3))) == 8
    assert list(neighbours(Coordinates(0, 0), 1, 1)) == []
