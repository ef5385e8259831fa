import sqlite3

from flask import Blueprint, abort, current_app, flash, render_template, request

from vrukshaveda.models import filter_plants, get_plant, list_plants

bp = Blueprint('plants', __name__, url_prefix='/plants')


@bp.route('/')
def index():
    query = request.args.get('q', '')
    try:
        plants = list_plants()
    except sqlite3.Error:
        current_app.logger.exception('Failed to load plants')
        flash('Failed to load plants', 'error')
        plants = []
    return render_template(
        'plants/list.html', plants=filter_plants(plants, query), query=query
    )


@bp.route('/<plant_id>')
def detail(plant_id):
    try:
        plant = get_plant(plant_id)
    except sqlite3.Error:
        current_app.logger.exception('Failed to load plant %s', plant_id)
        flash('Failed to load plant details', 'error')
        return render_template(
            'not_found.html',
            message='Failed to load plant details. Please try again.'
        ), 500
    if plant is None:
        abort(404)
    return render_template('plants/detail.html', plant=plant)
