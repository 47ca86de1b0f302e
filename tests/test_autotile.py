import pytest

from cryptforge.errors import ConfigError
from cryptforge.generation.autotile import (
    DEFAULT_INDEX_TABLE,
    point_blocks,
    quad,
    to_zero_based,
    validate_table,
)

from level_test_utils import mask_from


def test_isolated_cell_gets_outer_corners():
    grid = mask_from(["...", ".#.", "..."])
    assert point_blocks(grid, 1, 1, 3, 3) == (1, 2, 4, 8)
    assert quad(DEFAULT_INDEX_TABLE, grid, 1, 1, 3, 3) == (13, 18, 43, 48)


def test_surrounded_cell_and_out_of_bounds_count_as_occupied():
    full = mask_from(["###", "###", "###"])
    assert quad(DEFAULT_INDEX_TABLE, full, 1, 1, 3, 3) == (27, 28, 33, 34)
    single = mask_from(["#"])
    assert point_blocks(single, 0, 0, 1, 1) == (15, 15, 15, 15)
    assert quad(DEFAULT_INDEX_TABLE, single, 0, 0, 1, 1) == (27, 28, 33, 34)


def test_run_end_gets_concave_partner_corrections():
    grid = mask_from(["....", ".##.", "...."])
    assert quad(DEFAULT_INDEX_TABLE, grid, 1, 1, 4, 3) == (13, 14, 43, 44)


def _corner_table(tl=1, tr=1, bl=1, br=1):
    # an isolated cell samples cases 1, 2, 4, 8 for its TL, TR, BL, BR corners
    rows = [[1, 1, 1, 1] for _ in range(16)]
    rows[1][3] = tl
    rows[2][2] = tr
    rows[4][1] = bl
    rows[8][0] = br
    return rows


@pytest.mark.parametrize(
    "corners, expected",
    [
        ({"tl": 13, "tr": 16}, (13, 14, 1, 1)),
        ({"tl": 13, "bl": 31}, (13, 1, 19, 1)),
        ({"tr": 18, "tl": 15}, (17, 18, 1, 1)),
        ({"tr": 18, "br": 36}, (1, 18, 1, 24)),
        ({"bl": 43, "tl": 25}, (37, 1, 43, 1)),
        ({"bl": 43, "br": 46}, (1, 1, 43, 44)),
        ({"br": 48, "tr": 30}, (1, 42, 1, 48)),
        ({"br": 48, "bl": 45}, (1, 1, 47, 48)),
        ({"tr": 16, "bl": 31, "tl": 15}, (15, 16, 31, 1)),
    ],
)
def test_each_concave_correction(corners, expected):
    grid = mask_from(["...", ".#.", "..."])
    assert quad(_corner_table(**corners), grid, 1, 1, 3, 3) == expected


def test_empty_cells_match_each_other():
    # the quad is computed against cells equal to the current value
    grid = mask_from(["###", "#.#", "###"])
    assert quad(DEFAULT_INDEX_TABLE, grid, 1, 1, 3, 3) == (13, 18, 43, 48)


def test_validate_table_accepts_default():
    validate_table(DEFAULT_INDEX_TABLE)


@pytest.mark.parametrize(
    "table",
    [
        DEFAULT_INDEX_TABLE[:15],
        DEFAULT_INDEX_TABLE[:15] + ((1, 2, 3),),
        DEFAULT_INDEX_TABLE[:15] + ((0, 1, 1, 1),),
        DEFAULT_INDEX_TABLE[:15] + ((49, 1, 1, 1),),
    ],
)
def test_validate_table_rejects_bad_tables(table):
    with pytest.raises(ConfigError):
        validate_table(table)


def test_to_zero_based_clamps():
    assert to_zero_based(1) == 0
    assert to_zero_based(48) == 47
    assert to_zero_based(0) == 0
    assert to_zero_based(99) == 47
