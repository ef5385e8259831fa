import click
from flask import current_app
from flask.cli import with_appcontext
from flask_socketio import SocketIO, emit

from vrukshaveda import storage
from vrukshaveda.models import get_plant
from vrukshaveda.speech import (
    PlaybackController, create_engine, create_media_player, wait_for_voices
)

EXTENSION_KEY = 'vrukshaveda.playback'

socketio = None


def build_controller(app):
    config = app.config
    return PlaybackController(
        create_engine(config['SPEECH_ENGINE']),
        create_media_player(config['MEDIA_PLAYER']),
        lang=config['SHLOKA_LANG'],
        voice_hint=config['SHLOKA_VOICE_HINT'],
        rate=config['SHLOKA_RATE'],
        max_chunk_len=config['SHLOKA_CHUNK_LEN'],
        nudge_interval=config['TTS_RESUME_NUDGE'],
        media_ready_timeout=config['AUDIO_READY_TIMEOUT'],
    )


def get_controller():
    """The app's playback controller, created on first use."""
    app = current_app._get_current_object()
    controller = app.extensions.get(EXTENSION_KEY)
    if controller is None:
        controller = build_controller(app)
        set_controller(app, controller)
    return controller


def set_controller(app, controller):
    app.extensions[EXTENSION_KEY] = controller
    sio = app.extensions.get('socketio')
    if sio is not None:
        controller.add_listener(_socket_bridge(sio))
    controller.add_listener(_log_bridge(app))
    return controller


def _socket_bridge(sio):
    def forward(event, payload):
        if event == 'state':
            sio.emit('playback_state', payload)
        elif event == 'error':
            sio.emit('notification', {
                'title': payload['title'],
                'message': payload['message'],
                'category': 'error',
            })
    return forward


def _log_bridge(app):
    def forward(event, payload):
        if event == 'state':
            app.logger.debug('Playback %s (%s)', payload['state'], payload['tag'])
        else:
            app.logger.info('Playback error for %s: %s', payload['tag'], payload['message'])
    return forward


def start_plant_playback(plant):
    shloka = (plant.get('shloka') or '').strip()
    return get_controller().play(
        shloka, storage.audio_source(plant.get('audio_url')), tag=plant['id']
    )


def init_socketio(app):
    global socketio
    socketio = SocketIO(app)

    @socketio.on('play_shloka')
    def handle_play_shloka(data):
        plant_id = (data or {}).get('plant_id')
        plant = get_plant(plant_id) if plant_id else None
        if plant is None:
            emit('notification', {
                'title': 'Error', 'message': 'Plant not found', 'category': 'error'
            })
            return
        start_plant_playback(plant)

    @socketio.on('stop_shloka')
    def handle_stop_shloka(data=None):
        controller = get_controller()
        plant_id = (data or {}).get('plant_id')
        # a page only stops its own plant; without an id, stop whatever plays
        if plant_id is not None and plant_id != controller.tag:
            return
        controller.stop()

    @socketio.on('playback_status')
    def handle_playback_status():
        controller = get_controller()
        emit('playback_state', {'state': controller.state.value, 'tag': controller.tag})

    return socketio


@click.command('list-voices')
@with_appcontext
def list_voices_command():
    """Show the voices the configured speech engine offers."""
    controller = get_controller()
    voices = wait_for_voices(controller.engine.get_voices)
    if not voices:
        click.echo('No voices available.')
        return
    chosen = controller.resolve_voice()
    for voice in voices:
        marker = '*' if voice == chosen else ' '
        click.echo(f'{marker} {voice.name} [{voice.lang or "?"}] {voice.id}')


@click.command('speak-shloka')
@click.argument('plant_id')
@with_appcontext
def speak_shloka_command(plant_id):
    """Play a plant's shloka on this machine and wait for it to finish."""
    plant = get_plant(plant_id)
    if plant is None:
        raise click.ClickException(f'Plant {plant_id} not found.')

    errors = []
    controller = get_controller()
    controller.add_listener(
        lambda event, payload: errors.append(payload['message']) if event == 'error' else None
    )
    if not start_plant_playback(plant):
        raise click.ClickException('No text available to play.')
    try:
        controller.wait()
    except KeyboardInterrupt:
        controller.stop()
        raise click.Abort()
    if errors:
        raise click.ClickException(errors[-1])
    click.echo(f"Finished {plant['name']}.")


def init_app(app):
    app.cli.add_command(list_voices_command)
    app.cli.add_command(speak_shloka_command)
