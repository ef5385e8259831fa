"""Plant record helpers shared by the public pages, the admin and playback."""
import json
import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from .db import get_db

ARRAY_FIELDS = ('synonyms', 'useful_parts', 'indications', 'images')
TEXT_FIELDS = (
    'name', 'botanical_name', 'family', 'english_name', 'shloka', 'source_document'
)
LIST_FORM_FIELDS = ('synonyms', 'useful_parts', 'indications')

PUBLIC_SEARCH_FIELDS = ('name', 'botanical_name', 'family', 'english_name')
ADMIN_SEARCH_FIELDS = ('name', 'botanical_name', 'family')


def row_to_plant(row) -> Dict:
    plant = dict(row)
    for field in ARRAY_FIELDS:
        raw = plant.get(field)
        plant[field] = json.loads(raw) if raw else []
    return plant


def parse_list(value: Optional[str]) -> List[str]:
    """Split a comma separated form value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]


def plant_form_values(form) -> Dict:
    values = {}
    for field in TEXT_FIELDS:
        values[field] = (form.get(field) or '').strip() or None
    for field in LIST_FORM_FIELDS:
        values[field] = parse_list(form.get(field))
    return values


def filter_plants(plants, query, fields=PUBLIC_SEARCH_FIELDS):
    query = (query or '').strip().lower()
    if not query:
        return list(plants)
    return [
        p for p in plants
        if any(query in (p.get(f) or '').lower() for f in fields)
    ]


def slugify(name: str) -> str:
    return re.sub(r'\s+', '-', name.strip().lower())


def get_plant(plant_id) -> Optional[Dict]:
    row = get_db().execute('SELECT * FROM plant WHERE id = ?', (plant_id,)).fetchone()
    return row_to_plant(row) if row is not None else None


def list_plants() -> List[Dict]:
    rows = get_db().execute('SELECT * FROM plant ORDER BY name COLLATE NOCASE').fetchall()
    return [row_to_plant(r) for r in rows]


def insert_plant(db, values) -> str:
    """Insert a plant without committing and return its new id."""
    plant_id = str(uuid.uuid4())
    db.execute(
        'INSERT INTO plant (id, name, botanical_name, family, synonyms, english_name,'
        ' useful_parts, indications, shloka, source_document, images)'
        ' VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)',
        (plant_id, values['name'], values['botanical_name'], values['family'],
         json.dumps(values['synonyms']), values['english_name'],
         json.dumps(values['useful_parts']), json.dumps(values['indications']),
         values['shloka'], values['source_document'], json.dumps([]))
    )
    return plant_id


def update_plant(db, plant_id, values, images, audio_url):
    db.execute(
        'UPDATE plant SET name=?, botanical_name=?, family=?, synonyms=?, english_name=?,'
        ' useful_parts=?, indications=?, shloka=?, source_document=?, images=?,'
        ' audio_url=?, updated_at=? WHERE id=?',
        (values['name'], values['botanical_name'], values['family'],
         json.dumps(values['synonyms']), values['english_name'],
         json.dumps(values['useful_parts']), json.dumps(values['indications']),
         values['shloka'], values['source_document'], json.dumps(images),
         audio_url, datetime.now(), plant_id)
    )
