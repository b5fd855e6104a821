import logging

from quizlive import SOCKET_NAMESPACE
import quizlive.socketio_events as socketio_events

NS = SOCKET_NAMESPACE


def _events(sio, name):
    return [pkt['args'][0] if pkt['args'] else None
            for pkt in sio.get_received(NS) if pkt['name'] == name]


def _names(sio):
    return [pkt['name'] for pkt in sio.get_received(NS)]


def test_socket_connect_and_join(sio_client, quiz):
    assert sio_client.is_connected(NS)
    sio_client.emit('join:session', 'quiz1', namespace=NS)
    received = sio_client.get_received(NS)
    joined = [p['args'][0] for p in received if p['name'] == 'joined']
    assert joined == [{'room': 'QUIZ1', 'participantId': None}]
    updates = [p['args'][0] for p in received if p['name'] == 'session:update']
    assert updates == [{'count': 0}]


def test_join_unknown_session_reports_error(sio_client):
    sio_client.emit('join:session', 'NOPE1', namespace=NS)
    assert _events(sio_client, 'error') == [{'message': 'Session not found'}]


def test_rejected_event_is_logged(sio_client, caplog):
    caplog.set_level(logging.INFO)
    sio_client.emit('join:session', 'NOPE1', namespace=NS)
    assert _events(sio_client, 'error') == [{'message': 'Session not found'}]
    assert any(
        '[socket-error] event=join:session' in r.getMessage() and 'Session not found' in r.getMessage()
        for r in caplog.records
    )


def test_join_without_code_reports_error(sio_client):
    sio_client.emit('join:session', namespace=NS)
    assert _events(sio_client, 'error') == [{'message': 'Session code is required'}]


def test_sync_unknown_session_is_not_idle(sio_client):
    sio_client.emit('sync:state', 'NOPE1', namespace=NS)
    received = sio_client.get_received(NS)
    assert [p['name'] for p in received] == ['error']
    assert received[0]['args'][0] == {'message': 'Session not found'}


def test_sync_waiting_session_is_idle(sio_client, quiz):
    sio_client.emit('sync:state', 'QUIZ1', namespace=NS)
    assert _names(sio_client) == ['sync:idle']


def test_start_pushes_first_question_to_room(sio_factory, quiz, join_player, start_session):
    alice = join_player('Alice')
    player = sio_factory()
    screen = sio_factory()
    player.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    screen.emit('join:session', 'QUIZ1', namespace=NS)
    player.get_received(NS)
    screen.get_received(NS)

    start_session()

    for sio in (player, screen):
        received = sio.get_received(NS)
        names = [p['name'] for p in received]
        assert names.index('game:started') < names.index('game:question')
        question = next(p['args'][0] for p in received if p['name'] == 'game:question')
        assert question['qNum'] == 1
        assert question['total'] == 3
        assert question['time'] == 15
        assert question['question']['_id'] == quiz.question_ids[0]
        assert all(set(o) == {'text'} for o in question['question']['options'])


def test_quiz_scenario_reconnect_lands_on_break(sio_factory, client, quiz, join_player,
                                                start_session, submit, frozen_clock):
    alice = join_player('Alice')
    sio = sio_factory()
    sio.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    sio.emit('sync:state', 'QUIZ1', namespace=NS)
    assert 'sync:idle' in _names(sio)

    start_session()
    assert 'game:question' in _names(sio)

    res = submit(alice['participantId'], quiz.question_ids[0], 'Paris', 10).get_json()
    assert res['added'] == 17
    assert 'leaderboard:update' in _names(sio)

    sio.disconnect(namespace=NS)
    frozen_clock.tick(15)

    again = sio_factory()
    again.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    again.get_received(NS)
    again.emit('sync:state', 'quiz1', namespace=NS)
    received = again.get_received(NS)
    assert [p['name'] for p in received] == ['game:ranks']
    assert received[0]['args'][0] == [
        {'id': alice['participantId'], 'rank': 1, 'name': 'Alice', 'score': 17},
    ]


def test_reconnect_sees_current_question_not_stale_one(sio_factory, quiz, join_player,
                                                      start_session, advance_session):
    alice = join_player('Alice')
    sio = sio_factory()
    sio.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    start_session()
    sio.disconnect(namespace=NS)

    assert advance_session(force=True).status_code == 200

    again = sio_factory()
    again.emit('sync:state', 'QUIZ1', namespace=NS)
    question = _events(again, 'game:question')[0]
    assert question['qNum'] == 2
    assert question['question']['_id'] == quiz.question_ids[1]


def test_live_count_deduplicates_tabs(sio_factory, quiz, join_player):
    alice = join_player('Alice')
    tab_one = sio_factory()
    tab_two = sio_factory()
    screen = sio_factory()
    screen.emit('join:session', 'QUIZ1', namespace=NS)
    tab_one.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    tab_two.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    assert _events(screen, 'session:update')[-1] == {'count': 1}

    tab_one.disconnect(namespace=NS)
    assert _events(screen, 'session:update')[-1] == {'count': 1}
    tab_two.disconnect(namespace=NS)
    assert _events(screen, 'session:update')[-1] == {'count': 0}


def test_unknown_participant_id_joins_as_observer(sio_factory, quiz_factory, join_player):
    quiz_factory('QUIZ1')
    quiz_factory('QUIZ2')
    stranger = join_player('Zed', code='QUIZ2')
    sio = sio_factory()
    sio.emit('join:session', 'QUIZ1', stranger['participantId'], namespace=NS)
    assert _events(sio, 'joined') == [{'room': 'QUIZ1', 'participantId': None}]


def test_leave_session_updates_count(sio_factory, quiz, join_player):
    alice = join_player('Alice')
    sio = sio_factory()
    screen = sio_factory()
    screen.emit('join:session', 'QUIZ1', namespace=NS)
    sio.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    screen.get_received(NS)

    sio.emit('leave:session', 'QUIZ1', namespace=NS)
    assert _events(sio, 'left') == [{'room': 'QUIZ1'}]
    assert _events(screen, 'session:update') == [{'count': 0}]


def test_admin_stats(sio_factory, quiz, join_player):
    alice = join_player('Alice')
    admin = sio_factory()
    admin.emit('join:admin', 'wrong', namespace=NS)
    assert _events(admin, 'error') == [{'message': 'Admin passcode required'}]

    admin.emit('join:admin', 'test-admin', namespace=NS)
    assert _events(admin, 'admin:stats') == [{'activeUsers': 0, 'connections': 0, 'sessionCounts': {}}]

    player = sio_factory()
    player.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    assert _events(admin, 'admin:stats')[-1] == {
        'activeUsers': 1, 'connections': 1, 'sessionCounts': {'QUIZ1': 1},
    }


def test_stop_broadcasts_game_over(sio_factory, client, admin_headers, quiz, join_player,
                                   start_session, submit):
    alice = join_player('Alice')
    sio = sio_factory()
    sio.emit('join:session', 'QUIZ1', alice['participantId'], namespace=NS)
    start_session()
    submit(alice['participantId'], quiz.question_ids[0], 'Paris', 15)
    sio.get_received(NS)

    client.put('/api/sessions/QUIZ1/status', json={'status': 'COMPLETED'}, headers=admin_headers)
    over = _events(sio, 'game:over')
    assert over[0]['winners'] == [{'id': alice['participantId'], 'rank': 1, 'name': 'Alice', 'score': 20}]


def test_reset_sends_room_back_to_lobby(sio_factory, client, admin_headers, quiz, start_session):
    sio = sio_factory()
    sio.emit('join:session', 'QUIZ1', namespace=NS)
    start_session()
    sio.get_received(NS)
    client.delete('/api/sessions/QUIZ1/data', headers=admin_headers)
    assert 'sync:idle' in _names(sio)


def test_handler_failure_is_reported_and_socket_survives(sio_client, quiz, monkeypatch):
    def explode(code):
        raise RuntimeError('boom')

    monkeypatch.setattr(socketio_events, 'current_view', explode)
    sio_client.emit('sync:state', 'QUIZ1', namespace=NS)
    assert _events(sio_client, 'error') == [{'message': 'Internal server error'}]

    monkeypatch.undo()
    sio_client.emit('sync:state', 'QUIZ1', namespace=NS)
    assert _names(sio_client) == ['sync:idle']
