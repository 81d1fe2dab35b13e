import math
from typing import Optional, Sequence

from .types import WinningCell


def last_digit(score) -> int:
    try:
        value = float(score)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return 0
    return abs(math.floor(value)) % 10


def map_score_digit_to_grid_index(digit, markers: Sequence[int]) -> int:
    """Return the grid index whose marker equals ``digit``, or -1."""
    if isinstance(digit, bool) or not isinstance(digit, int) or not 0 <= digit <= 9:
        return -1
    if len(markers) != 10:
        return -1
    for idx, marker in enumerate(markers):
        if marker == digit:
            return idx
    return -1


def compute_winning_cell(home_score, away_score, board) -> Optional[WinningCell]:
    """Map the score's last digits onto the board's marker permutations.

    Home score selects the row (``row_markers``), away score the column
    (``column_markers``). Returns None when either marker list cannot
    resolve its digit.
    """
    row_marker = last_digit(home_score)
    col_marker = last_digit(away_score)
    row = map_score_digit_to_grid_index(row_marker, board['row_markers'])
    col = map_score_digit_to_grid_index(col_marker, board['column_markers'])
    if row < 0 or col < 0:
        return None
    return WinningCell(row=row, col=col, row_marker=row_marker, col_marker=col_marker)


def compute_winning_owner(assignments, cell: Optional[WinningCell], owners):
    if cell is None:
        return None
    if cell.row >= len(assignments):
        return None
    row = assignments[cell.row] or []
    if cell.col >= len(row):
        return None
    initials = (row[cell.col] or '').strip()
    if not initials:
        return None
    for owner in owners:
        if owner['initials'] == initials:
            return owner
    return None
