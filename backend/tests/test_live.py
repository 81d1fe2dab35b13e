from unittest.mock import MagicMock, patch

from sqlalchemy.exc import IntegrityError

from squares import db
from squares.services.squares import repository
from squares.services.squares.live import LiveBoardEngine, SnapshotCache, build_test_live_snapshot
from squares.services.squares.types import GameResult
from conftest import FakeProvider, make_snapshot

ORDERED = list(range(10))


def _board(assignments=None, owners=None):
    matrix = assignments or [['' for _ in range(10)] for _ in range(10)]
    return {
        'id': 'b1',
        'default_game_id': None,
        'row_markers': ORDERED,
        'column_markers': ORDERED,
        'assignments': matrix,
        'owners': owners or [],
    }


def _mock_repository(board):
    repo = MagicMock()
    repo.get_board_with_quarter_winners.return_value = {'board': board, 'quarter_winners': []}
    return repo


def test_repeated_poll_finalizes_quarter_once(flask_app):
    repo = _mock_repository(_board())
    polls = [make_snapshot(period=1, home=7, away=0), make_snapshot(period=2, home=7, away=3),
             make_snapshot(period=2, home=7, away=3)]
    provider = FakeProvider(*polls)
    engine = LiveBoardEngine(repository=repo, provider=provider)

    for _ in range(3):
        engine.get_live_board_snapshot('b1')

    assert repo.upsert_quarter_winner.call_count == 1
    kwargs = repo.upsert_quarter_winner.call_args.kwargs
    assert kwargs['quarter'] == 1
    assert (kwargs['home_score'], kwargs['away_score']) == (7, 0)


def test_first_poll_never_finalizes(flask_app):
    repo = _mock_repository(_board())
    engine = LiveBoardEngine(repository=repo, provider=FakeProvider(make_snapshot(period=3)))
    engine.get_live_board_snapshot('b1')
    repo.upsert_quarter_winner.assert_not_called()


def test_finalization_uses_end_of_quarter_score(flask_app):
    matrix = [['' for _ in range(10)] for _ in range(10)]
    matrix[7][3] = 'AB'
    matrix[0][0] = 'CD'
    owners = [{'id': 11, 'initials': 'AB'}, {'id': 12, 'initials': 'CD'}]
    repo = _mock_repository(_board(matrix, owners))
    provider = FakeProvider(make_snapshot(period=1, home=17, away=3), make_snapshot(period=2, home=20, away=10))
    engine = LiveBoardEngine(repository=repo, provider=provider)

    engine.get_live_board_snapshot('b1')
    second = engine.get_live_board_snapshot('b1')

    kwargs = repo.upsert_quarter_winner.call_args.kwargs
    assert kwargs['owner_id'] == 11
    assert (kwargs['home_score'], kwargs['away_score']) == (17, 3)
    assert kwargs['game_period_recorded'] == 1
    # The live answer still follows the current score
    assert second['winning_cell'] == {'row': 0, 'col': 0, 'row_marker': 0, 'col_marker': 0}
    assert second['winning_owner']['initials'] == 'CD'


def test_unowned_cell_finalizes_with_null_owner(flask_app):
    repo = _mock_repository(_board())
    provider = FakeProvider(make_snapshot(period=3, home=14, away=7), make_snapshot(period=4))
    engine = LiveBoardEngine(repository=repo, provider=provider)
    engine.get_live_board_snapshot('b1')
    engine.get_live_board_snapshot('b1')
    kwargs = repo.upsert_quarter_winner.call_args.kwargs
    assert kwargs['quarter'] == 3
    assert kwargs['owner_id'] is None


def test_failed_upsert_is_swallowed_and_cache_still_advances(flask_app):
    repo = _mock_repository(_board())
    repo.upsert_quarter_winner.side_effect = RuntimeError('db down')
    provider = FakeProvider(make_snapshot(period=1), make_snapshot(period=2), make_snapshot(period=2))
    cache = SnapshotCache()
    engine = LiveBoardEngine(repository=repo, provider=provider, cache=cache)

    engine.get_live_board_snapshot('b1')
    result = engine.get_live_board_snapshot('b1')
    assert result['game']['period'] == 2
    assert cache.get('b1').period == 2

    # The lost quarter is not retried on the next poll
    engine.get_live_board_snapshot('b1')
    assert repo.upsert_quarter_winner.call_count == 1


def test_fallback_status_is_passed_through(flask_app):
    repo = _mock_repository(_board())
    fallback = GameResult(snapshot=make_snapshot(status='fallback'), live_status='fallback')
    engine = LiveBoardEngine(repository=repo, provider=FakeProvider(fallback))
    result = engine.get_live_board_snapshot('b1')
    assert result['live_status'] == 'fallback'
    assert result['game']['status'] == 'fallback'


def test_game_id_resolution_inputs_reach_provider(flask_app):
    board = _board()
    board['default_game_id'] = 'board-game'
    provider = FakeProvider(make_snapshot())
    engine = LiveBoardEngine(repository=_mock_repository(board), provider=provider)
    engine.get_live_board_snapshot('b1', game_id='explicit')
    assert provider.calls == [('explicit', 'board-game')]


def test_two_engines_converge_on_one_winner_row(flask_app):
    repository.get_or_create_board('shared')
    first = LiveBoardEngine(repository, FakeProvider(make_snapshot(period=1, home=7), make_snapshot(period=2)))
    second = LiveBoardEngine(repository, FakeProvider(make_snapshot(period=1, home=7), make_snapshot(period=2)))

    for engine in (first, second):
        engine.get_live_board_snapshot('shared')
    for engine in (first, second):
        result = engine.get_live_board_snapshot('shared')

    winners = result['quarter_winners']
    assert len(winners) == 1
    assert winners[0]['quarter'] == 1
    assert winners[0]['home_score'] == 7


def test_upsert_overwrites_existing_quarter(flask_app):
    repository.get_or_create_board('b2')
    repository.upsert_quarter_winner('b2', 2, None, 3, 0, 2)
    repository.upsert_quarter_winner('b2', 2, None, 10, 7, 2)
    winners = repository.get_board_with_quarter_winners('b2')['quarter_winners']
    assert len(winners) == 1
    assert (winners[0]['home_score'], winners[0]['away_score']) == (10, 7)


def test_test_mode_snapshot_is_deterministic_for_a_clock(flask_app):
    repository.get_or_create_board('b3')
    snapshot = build_test_live_snapshot(repository, 'b3', now=1000.0)
    assert snapshot['game']['game_id'] == 'test-mode'
    assert snapshot['game']['away_score'] == int(1000.0 % 37)
    assert snapshot['game']['home_score'] == int((1000.0 / 1.2) % 35)
    assert 1 <= snapshot['game']['period'] <= 4
    assert snapshot['live_status'] == 'ok'


def test_upsert_retries_lost_insert_race_as_update(flask_app):
    repository.get_or_create_board('b4')
    real_commit = db.session.commit
    attempts = []

    def commit_losing_first_race():
        attempts.append(1)
        if len(attempts) == 1:
            raise IntegrityError('INSERT INTO quarter_winner', {}, Exception('duplicate key'))
        return real_commit()

    with patch.object(db.session, 'commit', side_effect=commit_losing_first_race):
        row = repository.upsert_quarter_winner('b4', 1, None, 21, 14, 1)

    assert len(attempts) == 2
    assert (row['home_score'], row['away_score']) == (21, 14)
    assert len(repository.get_board_with_quarter_winners('b4')['quarter_winners']) == 1
