import os

from flask import Flask, render_template, send_from_directory

from . import playback, storage
from .models import row_to_plant


def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True)

    # Cấu hình app
    app.config.from_mapping(
        SECRET_KEY='dev',
        DATABASE=os.path.join(app.instance_path, 'vrukshaveda.sqlite'),
        UPLOAD_FOLDER=os.path.join(app.instance_path, 'uploads'),
        MAX_CONTENT_LENGTH=16 * 1024 * 1024,  # 16MB max upload
        LOG_LEVEL='INFO',
        SPEECH_ENGINE='pyttsx3',
        MEDIA_PLAYER='pygame',
        SHLOKA_LANG='sa-IN',
        SHLOKA_VOICE_HINT='sanskrit',
        SHLOKA_RATE=0.9,
        SHLOKA_CHUNK_LEN=180,
        TTS_RESUME_NUDGE=0.25,
        AUDIO_READY_TIMEOUT=10.0,
    )

    if test_config is None:
        app.config.from_pyfile('config.py', silent=True)
        app.config.from_prefixed_env('VRUKSHAVEDA')
    else:
        app.config.from_mapping(test_config)

    app.logger.setLevel(app.config['LOG_LEVEL'])

    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    try:
        os.makedirs(app.config['UPLOAD_FOLDER'])
    except OSError:
        pass

    from . import db
    db.init_app(app)

    from . import auth
    app.register_blueprint(auth.bp)

    from . import plants
    app.register_blueprint(plants.bp)

    from . import admin
    app.register_blueprint(admin.bp)

    playback.init_app(app)
    playback.init_socketio(app)

    @app.template_filter('long_date')
    def long_date(value):
        if value is None:
            return ''
        return f'{value:%B} {value.day}, {value.year}'

    @app.route('/')
    def home():
        database = db.get_db()
        total = database.execute('SELECT COUNT(*) FROM plant').fetchone()[0]
        rows = database.execute(
            'SELECT * FROM plant ORDER BY created_at DESC LIMIT 6'
        ).fetchall()
        return render_template(
            'index.html', total=total, recent=[row_to_plant(r) for r in rows]
        )

    # Public bucket equivalent: anything stored under UPLOAD_FOLDER is readable
    @app.route(storage.URL_PREFIX + '<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    @app.errorhandler(404)
    def not_found(error):
        return render_template('not_found.html'), 404

    return app
