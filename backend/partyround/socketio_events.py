from flask_socketio import emit, ConnectionRefusedError
from flask import current_app, request
from partyround import socketio
from partyround.models import Answer, GamePhase, Rejection


REJECTION_MESSAGES = {
    Rejection.FULL: 'Room is full ({capacity}/{capacity})',
    Rejection.DUPLICATE_ACTIVE: 'Duplicate connection detected. Please close other tabs.',
}


def _game():
    return current_app.extensions['partyround']

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _reject(action: str, reason: Rejection) -> None:
    current_app.logger.info(f"[rejected] {action} sid={_get_sid()} reason={reason.value}")
    emit('rejected', {'action': action, 'reason': reason.value})


def handle_connect(auth=None):
    game = _game()
    sid = _get_sid()
    uuid = (auth or {}).get('uuid') if isinstance(auth, dict) else None
    result = game.connect(sid, uuid)
    if isinstance(result, Rejection):
        message = REJECTION_MESSAGES[result].format(capacity=game.registry.capacity)
        current_app.logger.info(f"[connect-refused] sid={sid} uuid={uuid} reason={result.value}")
        raise ConnectionRefusedError({'reason': result.value, 'message': message})

    roster = game.roster()
    emit('player_joined', {
        'uuid': result.persistent_id,
        'display_name': result.display_name,
        **roster,
    })
    socketio.emit('player_count_update', roster, namespace=request.namespace)
    emit('state_sync', game.sync_for(sid))
    current_app.logger.info(
        f"[connected] {result.display_name} uuid={result.persistent_id} total={roster['player_count']}"
    )


def handle_disconnect(reason=None):
    game = _game()
    participant = game.disconnect(_get_sid())
    if participant is None:
        return
    socketio.emit('player_count_update', game.roster(), namespace=request.namespace)


def handle_propose_round(data=None):
    game = _game()
    sid = _get_sid()
    if game.participant(sid) is None:
        return
    proposer_name = (data or {}).get('proposer_name') if isinstance(data, dict) else None
    if proposer_name is not None and not isinstance(proposer_name, str):
        emit('error', {'message': 'proposer_name must be a string'})
        return
    rejection = game.propose(sid, (proposer_name or '').strip() or None)
    if rejection is not None:
        _reject('propose_round', rejection)


def handle_vote_round(data=None):
    game = _game()
    sid = _get_sid()
    if game.participant(sid) is None:
        return
    approve = (data or {}).get('approve') if isinstance(data, dict) else None
    if not isinstance(approve, bool):
        emit('error', {'message': 'approve must be true or false'})
        return
    rejection = game.vote(sid, approve)
    if rejection is not None:
        _reject('vote_round', rejection)


def handle_submit_answer(data=None):
    game = _game()
    sid = _get_sid()
    if game.participant(sid) is None:
        return
    try:
        answer = Answer((data or {}).get('answer'))
    except (ValueError, AttributeError):
        emit('error', {'message': f"answer must be one of: {', '.join(a.value for a in Answer)}"})
        return
    rejection = game.answer(sid, answer)
    if rejection is not None:
        _reject('submit_answer', rejection)


def handle_ping(data=None):
    emit('pong', data or {})


def make_broadcaster(app, game, namespace: str):
    """Build the machine's change listener.

    Answering snapshots are personalized per recipient; every other phase is
    broadcast as one generic snapshot.
    """
    def _broadcast(phase: GamePhase) -> None:
        with app.app_context():
            if phase == GamePhase.ANSWERING:
                for participant in game.registry.active_participants():
                    socketio.emit(
                        'state_update',
                        game.machine.personalized_snapshot(participant),
                        to=participant.connection_id,
                        namespace=namespace,
                    )
            else:
                socketio.emit('state_update', game.machine.state_snapshot(), namespace=namespace)

    return _broadcast


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('propose_round', handle_propose_round, namespace=namespace)
    socketio.on_event('vote_round', handle_vote_round, namespace=namespace)
    socketio.on_event('submit_answer', handle_submit_answer, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
