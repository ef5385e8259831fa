import functools

from flask import (
    Blueprint, flash, g, redirect, render_template, request, session, url_for
)
from werkzeug.security import check_password_hash

from vrukshaveda.db import get_db

bp = Blueprint('auth', __name__, url_prefix='/auth')


@bp.route('/login', methods=('GET', 'POST'))
def login():
    if g.admin is not None:
        return redirect(url_for('admin.index'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')
        error = None

        if not email:
            error = 'Please enter your email address'
        elif not password:
            error = 'Please enter your password'
        else:
            admin = get_db().execute(
                'SELECT * FROM admin WHERE email = ?', (email,)
            ).fetchone()
            if admin is None or not check_password_hash(admin['password'], password):
                error = 'Invalid email or password'

        if error is None:
            session.clear()
            session['admin_id'] = admin['id']
            flash('Successfully logged in to VrukshaVeda', 'success')
            return redirect(url_for('admin.index'))

        flash(error, 'error')
        return render_template('auth/login.html', email=email), 401

    return render_template('auth/login.html')


@bp.before_app_request
def load_logged_in_admin():
    admin_id = session.get('admin_id')

    if admin_id is None:
        g.admin = None
    else:
        g.admin = get_db().execute(
            'SELECT id, email FROM admin WHERE id = ?', (admin_id,)
        ).fetchone()


@bp.route('/logout')
def logout():
    session.clear()
    return redirect(url_for('home'))


def admin_required(view):
    @functools.wraps(view)
    def wrapped_view(**kwargs):
        if g.admin is None:
            return redirect(url_for('auth.login'))
        return view(**kwargs)
    return wrapped_view
