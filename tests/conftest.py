import os
import tempfile

import pytest
from werkzeug.security import generate_password_hash

from vrukshaveda import create_app
from vrukshaveda.db import get_db, init_db

with open(os.path.join(os.path.dirname(__file__), 'data.sql'), 'rb') as f:
    _data_sql = f.read().decode('utf8')


@pytest.fixture
def app(tmp_path):
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'DATABASE': db_path,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'SPEECH_ENGINE': 'null',
        'MEDIA_PLAYER': 'null',
    })

    with app.app_context():
        init_db()
        db = get_db()
        db.executescript(_data_sql)
        db.executemany(
            'INSERT INTO admin (email, password) VALUES (?, ?)',
            [
                ('admin@vrukshaveda.in', generate_password_hash('test')),
                ('other@vrukshaveda.in', generate_password_hash('other')),
            ],
        )
        db.commit()

    yield app

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class AuthActions(object):
    def __init__(self, client):
        self._client = client

    def login(self, email='admin@vrukshaveda.in', password='test'):
        return self._client.post(
            '/auth/login',
            data={'email': email, 'password': password}
        )

    def logout(self):
        return self._client.get('/auth/logout')


@pytest.fixture
def auth(client):
    return AuthActions(client)
