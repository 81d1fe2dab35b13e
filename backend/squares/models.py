from squares import db
import json
from datetime import timezone

GRID_SIZE = 10


def empty_assignment_matrix():
    return [['' for _ in range(GRID_SIZE)] for _ in range(GRID_SIZE)]


def parse_markers(raw, fallback):
    """Decode a stored marker list, falling back when it is not 10 integers."""
    try:
        value = json.loads(raw) if raw else None
    except (TypeError, ValueError):
        return list(fallback)
    if not isinstance(value, list) or len(value) != GRID_SIZE:
        return list(fallback)
    if any(isinstance(n, bool) or not isinstance(n, int) for n in value):
        return list(fallback)
    return value


def parse_matrix(raw):
    try:
        value = json.loads(raw) if raw else None
    except (TypeError, ValueError):
        value = None
    if not isinstance(value, list) or len(value) != GRID_SIZE:
        return empty_assignment_matrix()
    matrix = []
    for row in value:
        if not isinstance(row, list) or len(row) != GRID_SIZE:
            matrix.append(['' for _ in range(GRID_SIZE)])
            continue
        matrix.append([cell if isinstance(cell, str) else '' for cell in row])
    return matrix


def _utc_iso(value):
    if value is None:
        return None
    # SQLite hands back naive datetimes; stored values are always UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class Board(db.Model):
    __tablename__ = 'board'
    id = db.Column(db.String(80), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    default_game_id = db.Column(db.String(40), nullable=True)
    top_team_label = db.Column(db.String(64), nullable=False, default='Away')
    side_team_label = db.Column(db.String(64), nullable=False, default='Home')
    column_markers = db.Column(db.Text, nullable=False)  # JSON-encoded list of 10 digits
    row_markers = db.Column(db.Text, nullable=False)  # JSON-encoded list of 10 digits
    assignments = db.Column(db.Text, nullable=False)  # JSON-encoded 10x10 matrix of initials
    theme_defaults = db.Column(db.Text, nullable=True)  # JSON-encoded {theme, accent, bg, text}
    # Bumped on every flush; concurrent writers of a stale row fail instead of overwriting
    version = db.Column(db.Integer, nullable=False, default=1)
    owners = db.relationship('BoardOwner', back_populates='board', order_by='BoardOwner.sort_order')
    quarter_winners = db.relationship('QuarterWinner', back_populates='board', order_by='QuarterWinner.quarter')

    __mapper_args__ = {'version_id_col': version}

    def get_assignments(self):
        return parse_matrix(self.assignments)

    def set_assignments(self, matrix):
        self.assignments = json.dumps(matrix)

    def to_dict(self, defaults, owners):
        try:
            theme = json.loads(self.theme_defaults) if self.theme_defaults else None
        except (TypeError, ValueError):
            theme = None
        return {
            'id': self.id,
            'name': self.name,
            'default_game_id': self.default_game_id,
            'top_team_label': self.top_team_label,
            'side_team_label': self.side_team_label,
            'column_markers': parse_markers(self.column_markers, defaults['column_markers']),
            'row_markers': parse_markers(self.row_markers, defaults['row_markers']),
            'assignments': self.get_assignments(),
            'theme_defaults': theme if isinstance(theme, dict) else defaults['theme_defaults'],
            'owners': [o.to_dict() for o in owners],
        }


class BoardOwner(db.Model):
    __tablename__ = 'board_owner'
    id = db.Column(db.Integer, primary_key=True)
    board_id = db.Column(db.String(80), db.ForeignKey('board.id', ondelete='CASCADE'), nullable=False, index=True)
    initials = db.Column(db.String(4), nullable=False)
    display_name = db.Column(db.String(64), nullable=False)
    bg_color = db.Column(db.String(7), nullable=False, default='#1d4ed8')
    text_color = db.Column(db.String(7), nullable=False, default='#ffffff')
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    board = db.relationship('Board', back_populates='owners')

    __table_args__ = (
        db.UniqueConstraint('board_id', 'initials', name='uq_board_owner_initials'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'board_id': self.board_id,
            'initials': self.initials,
            'display_name': self.display_name,
            'bg_color': self.bg_color,
            'text_color': self.text_color,
            'sort_order': self.sort_order,
            'locked_at': _utc_iso(self.locked_at),
        }


class QuarterWinner(db.Model):
    __tablename__ = 'quarter_winner'
    id = db.Column(db.Integer, primary_key=True)
    board_id = db.Column(db.String(80), db.ForeignKey('board.id', ondelete='CASCADE'), nullable=False)
    quarter = db.Column(db.Integer, nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('board_owner.id', ondelete='SET NULL'), nullable=True)
    home_score = db.Column(db.Integer, nullable=False)
    away_score = db.Column(db.Integer, nullable=False)
    game_period_recorded = db.Column(db.Integer, nullable=False)
    board = db.relationship('Board', back_populates='quarter_winners')
    owner = db.relationship('BoardOwner')

    __table_args__ = (
        db.UniqueConstraint('board_id', 'quarter', name='uq_quarter_winner_board_quarter'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'board_id': self.board_id,
            'quarter': self.quarter,
            'owner_id': self.owner_id,
            'owner_initials': self.owner.initials if self.owner else None,
            'owner_display_name': self.owner.display_name if self.owner else None,
            'home_score': self.home_score,
            'away_score': self.away_score,
            'game_period_recorded': self.game_period_recorded,
        }
