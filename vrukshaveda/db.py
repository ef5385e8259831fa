import sqlite3
from datetime import datetime

import click
from flask import current_app, g
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash


def get_db():
    if 'db' not in g:
        g.db = sqlite3.connect(
            current_app.config['DATABASE'],
            detect_types=sqlite3.PARSE_DECLTYPES
        )
        g.db.row_factory = sqlite3.Row

    return g.db


def close_db(e=None):
    db = g.pop('db', None)

    if db is not None:
        db.close()


def init_db():
    db = get_db()

    with current_app.open_resource('schema.sql') as f:
        db.executescript(f.read().decode('utf8'))


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Clear the existing data and create new tables."""
    init_db()
    click.echo('Initialized the database.')


@click.command('create-admin')
@click.argument('email')
@click.password_option()
@with_appcontext
def create_admin_command(email, password):
    """Create an admin account that can add and edit plants."""
    email = email.strip().lower()
    db = get_db()
    try:
        db.execute(
            'INSERT INTO admin (email, password) VALUES (?, ?)',
            (email, generate_password_hash(password)),
        )
        db.commit()
    except db.IntegrityError:
        raise click.ClickException(f'Admin {email} already exists.')
    click.echo(f'Created admin {email}.')


sqlite3.register_adapter(datetime, lambda d: d.isoformat(' '))
sqlite3.register_converter(
    'timestamp', lambda v: datetime.fromisoformat(v.decode())
)


def init_app(app):
    app.teardown_appcontext(close_db)
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_admin_command)

    with app.app_context():
        if not _has_schema():
            app.logger.info('Database does not exist yet, initializing from schema.sql')
            init_db()


def _has_schema():
    row = get_db().execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='plant'"
    ).fetchone()
    return row is not None
