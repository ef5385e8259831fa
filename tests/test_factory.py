from vrukshaveda import create_app, playback


def test_config():
    assert not create_app({'TESTING': False, 'SPEECH_ENGINE': 'null'}).testing
    assert create_app({'TESTING': True}).testing


def test_home(client):
    response = client.get('/')
    assert response.status_code == 200
    assert b'VrukshaVeda' in response.data
    assert b'<strong>2</strong> plants' in response.data
    # newest first
    assert response.data.index(b'Guduchi') < response.data.index(b'Tulasi')


def test_unknown_route_renders_not_found(client):
    response = client.get('/nowhere')
    assert response.status_code == 404
    assert b'Plant Not Found' in response.data


def test_null_speech_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('VRUKSHAVEDA_SPEECH_ENGINE', 'null')
    monkeypatch.setenv('VRUKSHAVEDA_MEDIA_PLAYER', 'null')
    monkeypatch.setenv('VRUKSHAVEDA_DATABASE', str(tmp_path / 'env.sqlite'))
    monkeypatch.setenv('VRUKSHAVEDA_UPLOAD_FOLDER', str(tmp_path / 'uploads'))

    app = create_app()
    assert app.config['DATABASE'] == str(tmp_path / 'env.sqlite')

    with app.app_context():
        controller = playback.get_controller()
    assert controller.engine.name == 'null'
    assert controller.media.name == 'null'
