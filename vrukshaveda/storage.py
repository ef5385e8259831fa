"""Image and audio storage under UPLOAD_FOLDER.

Files are laid out per bucket and plant, ``plant-images/<plant_id>/<ts>-<i>.<ext>``
and ``plant-audio/<plant_id>/<ts>.<ext>``, and served back by the
``uploaded_file`` route.
"""
import os
import time
import uuid

from flask import current_app, url_for
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

IMAGE_BUCKET = 'plant-images'
AUDIO_BUCKET = 'plant-audio'
URL_PREFIX = '/uploads/'

IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
AUDIO_EXTENSIONS = {'mp3', 'wav', 'ogg', 'm4a'}


class UploadError(Exception):
    pass


def _stamp():
    # unique per call, also within one millisecond
    return f'{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}'


def _extension(filename):
    filename = secure_filename(filename or '')
    if '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[1].lower()


def _save(file, relpath):
    full_path = os.path.join(current_app.config['UPLOAD_FOLDER'], relpath)
    try:
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        file.save(full_path)
    except OSError as e:
        raise UploadError(f'Could not store {file.filename}: {e}') from e
    return url_for('uploaded_file', filename=relpath)


def selected_files(files):
    """Drop the empty parts browsers send for untouched file inputs."""
    return [f for f in files if f and f.filename]


def save_plant_images(plant_id, files):
    """Store images for a plant and return their public URLs in order.

    Raises UploadError on the first bad file; files saved before the failure
    are removed again so a failed save leaves nothing behind.
    """
    urls = []
    stamp = _stamp()
    try:
        for i, file in enumerate(files):
            ext = _extension(file.filename)
            if ext not in IMAGE_EXTENSIONS:
                raise UploadError(f'{file.filename} is not a supported image')
            try:
                Image.open(file.stream).verify()
            except (UnidentifiedImageError, OSError) as e:
                raise UploadError(f'{file.filename} is not a readable image') from e
            file.stream.seek(0)
            urls.append(_save(file, f'{IMAGE_BUCKET}/{plant_id}/{stamp}-{i}.{ext}'))
    except UploadError:
        discard(urls)
        raise
    return urls


def save_plant_audio(plant_id, file):
    ext = _extension(file.filename)
    if ext not in AUDIO_EXTENSIONS:
        raise UploadError(f'{file.filename} is not a supported audio file')
    stamp = _stamp()
    return _save(file, f'{AUDIO_BUCKET}/{plant_id}/{stamp}.{ext}')


def local_path(url):
    """Map a URL produced by this module back to its file, or None."""
    if not url:
        return None
    if not url.startswith(URL_PREFIX):
        return None
    relpath = url[len(URL_PREFIX):]
    root = os.path.abspath(current_app.config['UPLOAD_FOLDER'])
    full_path = os.path.abspath(os.path.join(root, relpath))
    if not full_path.startswith(root + os.sep):
        return None
    return full_path


def audio_source(url):
    """What the media player should open for a plant's audio_url."""
    if not url:
        return None
    return local_path(url) or url


def discard(urls):
    for url in urls:
        path = local_path(url)
        if path is None:
            continue
        try:
            os.remove(path)
        except OSError:
            current_app.logger.warning('Could not remove %s', path)
