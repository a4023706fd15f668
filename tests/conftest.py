import base64
import json
import os
import random
import re

import pytest
from flask import g

from arena import create_app, db, socketio
from arena.services.container import ArenaServices
from arena.services.problems import ProblemCatalog


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    CORS_ORIGINS = ['http://localhost:5173']
    ROOM_DURATIONS_SEC = [300, 600, 900]
    JUDGE0_URL = 'http://judge.test'


def submitted_source(request):
    """Source text of a Judge0 submission captured by an httpx mock transport."""
    body = json.loads(request.content)
    return base64.b64decode(body['source_code']).decode('utf-8')


def harness_output(request, *markers):
    """Stdout the harness would print: each marker tagged with the submission nonce."""
    nonce = re.search(r'\("([0-9a-f]{32})"\)', submitted_source(request)).group(1)
    return ''.join(f'{marker}:{nonce}\n' for marker in markers)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


class Recorder:
    """Collects everything the services emit as (event, payload, sid)."""

    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, sid):
        self.sent.append((event, payload, sid))

    def events(self, name, sid=None):
        return [p for (e, p, s) in self.sent if e == name and (sid is None or s == sid)]

    def names(self, sid):
        return [e for (e, _, s) in self.sent if s == sid]

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def emitter():
    return Recorder()


@pytest.fixture(scope='session')
def problems():
    return ProblemCatalog.from_dir()


def build_services(clock, emitter, problems, **overrides):
    config = {'ROOM_DURATIONS_SEC': [300, 600, 900], 'MIN_PLAYERS': 2}
    config.update(overrides)
    return ArenaServices(
        config, emitter, clock=clock, spawn=None, sleep=lambda s: None,
        problems=problems, rng=random.Random(7),
    )


@pytest.fixture()
def services(clock, emitter, problems):
    svc = build_services(clock, emitter, problems)
    for sid, name in (('sid-a', 'alice'), ('sid-b', 'bob'), ('sid-c', 'carol')):
        svc.registry.register(sid, name)
    return svc


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    # Requests reuse the fixture's app context (and its ``g``); drop Flask-Login's
    # cached user so each test client resolves its own session.
    @application.before_request
    def _reset_cached_login_user():
        g.pop('_login_user', None)

    with application.app_context():
        from arena.models import User
        db.create_all()
        for name in ('alice', 'bob', 'carol'):
            user = User(username=name)
            user.set_password('password')
            db.session.add(user)
        db.session.commit()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def login(test_client, username, password='password'):
    res = test_client.post('/login', json={'username': username, 'password': password})
    assert res.status_code == 200
    return test_client


@pytest.fixture()
def login_as(flask_app):
    def _login(username):
        return login(flask_app.test_client(), username)
    return _login


@pytest.fixture()
def sio_as(flask_app):
    """Socket.IO test clients that carry a logged-in Flask session."""
    opened = []

    def _connect(username):
        http = login(flask_app.test_client(), username)
        sio = socketio.test_client(flask_app, flask_test_client=http)
        opened.append(sio)
        return sio

    yield _connect
    for sio in opened:
        if sio.is_connected():
            sio.disconnect()
