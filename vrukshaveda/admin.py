import io
import sqlite3

from flask import (
    Blueprint, abort, current_app, flash, redirect, render_template, request,
    send_file, url_for
)

from vrukshaveda import storage
from vrukshaveda.auth import admin_required
from vrukshaveda.db import get_db
from vrukshaveda.models import (
    ADMIN_SEARCH_FIELDS, filter_plants, get_plant, insert_plant, list_plants,
    plant_form_values, slugify, update_plant
)
from vrukshaveda.qr import qr_png

bp = Blueprint('admin', __name__, url_prefix='/admin')


def _get_plant_or_404(plant_id):
    plant = get_plant(plant_id)
    if plant is None:
        abort(404)
    return plant


@bp.route('/')
@admin_required
def index():
    query = request.args.get('q', '')
    try:
        plants = list_plants()
    except sqlite3.Error:
        current_app.logger.exception('Failed to load plants')
        flash('Failed to load plants', 'error')
        plants = []
    return render_template(
        'admin/index.html',
        plants=filter_plants(plants, query, ADMIN_SEARCH_FIELDS),
        query=query,
    )


@bp.route('/plants/new', methods=['GET', 'POST'])
@admin_required
def create_plant():
    if request.method == 'POST':
        values = plant_form_values(request.form)
        if not values['name']:
            flash('Plant name is required', 'error')
            return render_template('admin/plant_form.html', plant=None, form=request.form), 400

        images = storage.selected_files(request.files.getlist('images'))
        audio = storage.selected_files([request.files.get('audio')])
        db = get_db()
        saved = []
        try:
            plant_id = insert_plant(db, values)
            image_urls, audio_url = [], None
            if images:
                image_urls = storage.save_plant_images(plant_id, images)
                saved.extend(image_urls)
            if audio:
                audio_url = storage.save_plant_audio(plant_id, audio[0])
                saved.append(audio_url)
            if saved:
                update_plant(db, plant_id, values, image_urls, audio_url)
            db.commit()
        except (storage.UploadError, sqlite3.Error) as e:
            db.rollback()
            storage.discard(saved)
            current_app.logger.warning('Failed to add plant %s: %s', values['name'], e)
            flash(f'Failed to add plant: {e}', 'error')
            return render_template('admin/plant_form.html', plant=None, form=request.form), 400

        current_app.logger.info('Added plant %s (%s)', values['name'], plant_id)
        flash(f"{values['name']} added successfully!", 'success')
        return redirect(url_for('admin.qr_code', plant_id=plant_id))

    return render_template('admin/plant_form.html', plant=None, form={})


@bp.route('/plants/<plant_id>/edit', methods=['GET', 'POST'])
@admin_required
def edit_plant(plant_id):
    plant = _get_plant_or_404(plant_id)

    if request.method == 'POST':
        values = plant_form_values(request.form)
        if not values['name']:
            flash('Plant name is required', 'error')
            return render_template('admin/plant_form.html', plant=plant, form=request.form), 400

        images = storage.selected_files(request.files.getlist('images'))
        audio = storage.selected_files([request.files.get('audio')])
        removed = set(request.form.getlist('remove_images'))
        kept_images = [url for url in plant['images'] if url not in removed]
        audio_url = None if request.form.get('clear_audio') else plant['audio_url']

        db = get_db()
        saved = []
        try:
            new_images = storage.save_plant_images(plant_id, images) if images else []
            saved.extend(new_images)
            if audio:
                audio_url = storage.save_plant_audio(plant_id, audio[0])
                saved.append(audio_url)
            update_plant(db, plant_id, values, kept_images + new_images, audio_url)
            db.commit()
        except (storage.UploadError, sqlite3.Error) as e:
            db.rollback()
            storage.discard(saved)
            current_app.logger.warning('Failed to update plant %s: %s', plant_id, e)
            flash(f'Failed to update plant: {e}', 'error')
            return render_template('admin/plant_form.html', plant=plant, form=request.form), 400

        replaced = [url for url in plant['images'] if url in removed]
        if plant['audio_url'] and plant['audio_url'] != audio_url:
            replaced.append(plant['audio_url'])
        storage.discard(replaced)

        flash(f"{values['name']} updated.", 'success')
        return redirect(url_for('admin.index'))

    return render_template('admin/plant_form.html', plant=plant, form=_form_defaults(plant))


def _form_defaults(plant):
    form = {k: plant[k] or '' for k in (
        'name', 'botanical_name', 'family', 'english_name', 'shloka', 'source_document'
    )}
    for field in ('synonyms', 'useful_parts', 'indications'):
        form[field] = ', '.join(plant[field])
    return form


@bp.route('/plants/<plant_id>/qr')
@admin_required
def qr_code(plant_id):
    plant = _get_plant_or_404(plant_id)
    target = url_for('plants.detail', plant_id=plant_id, _external=True)
    return render_template('admin/qr.html', plant=plant, target=target)


@bp.route('/plants/<plant_id>/qr.png')
@admin_required
def qr_code_png(plant_id):
    plant = _get_plant_or_404(plant_id)
    target = url_for('plants.detail', plant_id=plant_id, _external=True)
    filename = f"{slugify(plant['name'])}-qr.png"
    return send_file(
        io.BytesIO(qr_png(target)),
        mimetype='image/png',
        as_attachment=True,
        download_name=filename,
    )
