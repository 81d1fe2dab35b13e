"""Request schemas for the boards API."""
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter, field_validator

BoardId = Annotated[str, StringConstraints(min_length=1, max_length=80, pattern=r'^[a-zA-Z0-9_-]+$')]
HexColor = Annotated[
    str,
    StringConstraints(pattern=r'^#(?:[A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$', to_lower=True),
]
Digit = Annotated[int, Field(strict=True, ge=0, le=9)]
CellInitials = Annotated[str, StringConstraints(strip_whitespace=True, max_length=4)]

# Same bound as BoardOwner.display_name
GuestName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]

_board_id_adapter = TypeAdapter(BoardId)
_guest_name_adapter = TypeAdapter(GuestName)


def parse_board_id(raw) -> str:
    return _board_id_adapter.validate_python(raw)


def parse_guest_name(raw) -> str:
    return _guest_name_adapter.validate_python(raw)


class LiveQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    game_id: Optional[Annotated[str, StringConstraints(min_length=1, max_length=40)]] = Field(None, alias='gameId')
    test_mode: Optional[Literal['0', '1']] = Field(None, alias='testMode')


class ThemeDefaults(BaseModel):
    theme: Literal['light', 'dark', 'auto']
    accent: HexColor
    bg: HexColor
    text: HexColor


class OwnerPatch(BaseModel):
    initials: Annotated[str, StringConstraints(min_length=1, max_length=4)]
    display_name: Annotated[str, StringConstraints(min_length=1, max_length=64)]
    bg_color: HexColor
    text_color: HexColor
    sort_order: Annotated[int, Field(strict=True, ge=0)]


class BoardPatch(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: Optional[Annotated[str, StringConstraints(min_length=1, max_length=120)]] = None
    default_game_id: Optional[Annotated[str, StringConstraints(min_length=1, max_length=40)]] = None
    top_team_label: Optional[Annotated[str, StringConstraints(min_length=1, max_length=64)]] = None
    side_team_label: Optional[Annotated[str, StringConstraints(min_length=1, max_length=64)]] = None
    column_markers: Optional[List[Digit]] = None
    row_markers: Optional[List[Digit]] = None
    assignments: Optional[List[List[CellInitials]]] = None
    theme_defaults: Optional[ThemeDefaults] = None
    owners: Optional[List[OwnerPatch]] = None

    @field_validator('column_markers', 'row_markers')
    @classmethod
    def _permutation(cls, value):
        if value is not None and sorted(value) != list(range(10)):
            raise ValueError('markers must be a permutation of 0-9')
        return value

    @field_validator('assignments')
    @classmethod
    def _ten_by_ten(cls, value):
        if value is not None and (len(value) != 10 or any(len(row) != 10 for row in value)):
            raise ValueError('assignments must be a 10x10 matrix')
        return value

    def to_patch(self) -> dict:
        patch = self.model_dump(exclude_unset=True)
        # Only default_game_id may be cleared with an explicit null
        return {k: v for k, v in patch.items() if v is not None or k == 'default_game_id'}


class GuestClaim(BaseModel):
    initials: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=4)]] = None
    bg_color: Optional[HexColor] = None
    text_color: Optional[HexColor] = None


class GuestPick(BaseModel):
    row: Digit
    col: Digit
    selected: Annotated[bool, Field(strict=True)]


class GuestAdminAction(BaseModel):
    action: Literal['clear_picks', 'clear_winners', 'clear_all', 'seed_demo']
