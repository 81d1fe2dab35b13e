import random

from squares.models import GRID_SIZE, empty_assignment_matrix

DEFAULT_MARKERS = list(range(GRID_SIZE))

DEFAULT_THEME = {
    'theme': 'light',
    'accent': '#161d21',
    'bg': '#ffffff',
    'text': '#111111',
}

DEFAULT_OWNER_BG = '#1d4ed8'
DEFAULT_OWNER_TEXT = '#ffffff'

DEMO_OWNERS = [
    {'initials': 'AB', 'display_name': 'Alex Brown', 'bg_color': '#1d4ed8', 'text_color': '#ffffff'},
    {'initials': 'NB', 'display_name': 'Nicoletta Berry', 'bg_color': '#0f766e', 'text_color': '#ffffff'},
    {'initials': 'RJ', 'display_name': 'Ryan James', 'bg_color': '#9333ea', 'text_color': '#ffffff'},
    {'initials': 'KT', 'display_name': 'Kim Taylor', 'bg_color': '#ea580c', 'text_color': '#ffffff'},
    {'initials': 'MO', 'display_name': 'Mia Owens', 'bg_color': '#be123c', 'text_color': '#ffffff'},
    {'initials': 'LS', 'display_name': 'Leo Santos', 'bg_color': '#334155', 'text_color': '#ffffff'},
]


def shuffled_markers():
    digits = list(DEFAULT_MARKERS)
    random.shuffle(digits)
    return digits


def build_default_board(board_id: str, default_game_id=None):
    return {
        'id': board_id,
        'name': f'Board {board_id}',
        'default_game_id': default_game_id,
        'top_team_label': 'Away',
        'side_team_label': 'Home',
        'column_markers': shuffled_markers(),
        'row_markers': shuffled_markers(),
        'assignments': empty_assignment_matrix(),
        'theme_defaults': dict(DEFAULT_THEME),
        'owners': [],
    }


def seed_demo_assignments(initials, picks_per_owner: int):
    """Spread each owner's picks over the grid with a step coprime to 100."""
    matrix = empty_assignment_matrix()
    cells = GRID_SIZE * GRID_SIZE
    total = min(cells, len(initials) * picks_per_owner)
    for i in range(total):
        owner_idx = i // picks_per_owner
        cell = (i * 37) % cells
        matrix[cell // GRID_SIZE][cell % GRID_SIZE] = initials[owner_idx] if owner_idx < len(initials) else ''
    return matrix
