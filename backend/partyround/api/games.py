from flask import Blueprint, jsonify, current_app


games = Blueprint('games', __name__)


def _game():
    return current_app.extensions['partyround']


@games.route('/state', methods=['GET'])
def get_game_state():
    """
    Returns the broadcast snapshot of the current phase plus the roster.
    """
    game = _game()
    cfg = current_app.config
    # Include phase durations so clients can render countdown rings
    durations = {
        'voting': int(cfg.get('VOTING_DURATION_SEC', 10)),
        'answering': int(cfg.get('ANSWER_DURATION_SEC', 10)),
        'results': int(cfg.get('RESULTS_DURATION_SEC', 10)),
    }
    payload = game.state()
    payload['roster'] = game.roster()
    payload['durations'] = durations
    return jsonify(payload), 200


@games.route('/players', methods=['GET'])
def get_players():
    """
    Returns the active players and their animal names.
    """
    roster = _game().roster()
    roster['capacity'] = _game().registry.capacity
    return jsonify(roster), 200
