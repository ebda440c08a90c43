import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of allowed browser origins
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:5174,http://127.0.0.1:5174').split(',') if o.strip()]
    SOCKETIO_NAMESPACE = '/ws'
    # Phase countdowns (seconds) and tick granularity
    VOTING_DURATION_SEC = 10
    ANSWER_DURATION_SEC = 10
    RESULTS_DURATION_SEC = 10
    TICK_SEC = 1
    # How long a disconnected player keeps their animal name
    DISCONNECT_GRACE_SEC = 60
