import pytest
from flask import g, session


def test_login(client, auth):
    assert client.get('/auth/login').status_code == 200
    response = auth.login()
    assert response.headers['Location'] == '/admin/'

    with client:
        client.get('/')
        assert session['admin_id'] == 1
        assert g.admin['email'] == 'admin@vrukshaveda.in'


def test_login_normalises_email(client, auth):
    response = auth.login(email='  ADMIN@vrukshaveda.in ')
    assert response.headers['Location'] == '/admin/'


@pytest.mark.parametrize(('email', 'password', 'message'), (
    ('', 'test', b'Please enter your email address'),
    ('admin@vrukshaveda.in', '', b'Please enter your password'),
    ('nobody@vrukshaveda.in', 'test', b'Invalid email or password'),
    ('admin@vrukshaveda.in', 'wrong', b'Invalid email or password'),
))
def test_login_validate_input(auth, email, password, message):
    response = auth.login(email, password)
    assert response.status_code == 401
    assert message in response.data


def test_logged_in_admin_skips_login(client, auth):
    auth.login()
    response = client.get('/auth/login')
    assert response.headers['Location'] == '/admin/'


def test_logout(client, auth):
    auth.login()

    with client:
        auth.logout()
        assert 'admin_id' not in session


@pytest.mark.parametrize('path', (
    '/admin/',
    '/admin/plants/new',
    '/admin/plants/tulasi/edit',
    '/admin/plants/tulasi/qr',
    '/admin/plants/tulasi/qr.png',
))
def test_admin_required(client, path):
    response = client.get(path)
    assert response.headers['Location'] == '/auth/login'
