"""
Object storage for uploaded images and documents.

Objects live under ``UPLOAD_FOLDER`` keyed as ``<folder>/<epoch-ms>-<random>.<ext>``
and are served back from ``/uploads/<key>``.
"""

import logging
import os
import secrets
import time
from pathlib import Path

from flask import Blueprint, current_app, g, send_from_directory, url_for
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

storage_bp = Blueprint('storage', __name__)


class UploadError(ValueError):
    """Raised when an uploaded file is rejected."""


def detect_file_type(filename, mimetype=''):
    extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    mimetype = (mimetype or '').lower()

    if 'pdf' in mimetype or extension == 'pdf':
        return 'PDF'
    if 'word' in mimetype or extension in ('doc', 'docx'):
        return 'Word'
    if 'powerpoint' in mimetype or extension in ('ppt', 'pptx'):
        return 'PowerPoint'
    if 'excel' in mimetype or extension in ('xls', 'xlsx'):
        return 'Excel'
    if 'video' in mimetype or extension in ('mp4', 'mov', 'avi'):
        return 'Video'
    return extension.upper() or 'File'


def has_file(file):
    return file is not None and bool(file.filename)


def _file_size(file):
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _object_key(folder, filename):
    folder = secure_filename(folder) or 'misc'
    name = secure_filename(filename)
    extension = name.rsplit('.', 1)[-1].lower() if '.' in name else ''
    stem = f'{int(time.time() * 1000)}-{secrets.token_hex(4)}'
    return f'{folder}/{stem}.{extension}' if extension else f'{folder}/{stem}'


def _store(file, folder):
    key = _object_key(folder, file.filename)
    target = Path(current_app.config['UPLOAD_FOLDER']) / key
    target.parent.mkdir(parents=True, exist_ok=True)
    file.save(str(target))
    logger.info('Stored upload %s (%s)', key, file.mimetype)
    g.setdefault('stored_keys', []).append(key)
    return key


def discard_uploads():
    """Delete every object stored during this request."""
    root = Path(current_app.config['UPLOAD_FOLDER'])
    for key in g.pop('stored_keys', []):
        (root / key).unlink(missing_ok=True)
        logger.info('Discarded upload %s', key)


def public_url(key):
    return url_for('storage.uploaded_file', key=key)


def save_image(file, folder):
    """Validate and store an image upload, returning its public URL."""
    if not has_file(file):
        raise UploadError('Please select an image file')
    if not (file.mimetype or '').startswith('image/'):
        raise UploadError('Please select an image file')
    limit = current_app.config['MAX_IMAGE_SIZE']
    if _file_size(file) > limit:
        raise UploadError(f'Image size should be less than {limit // (1024 * 1024)}MB')
    return public_url(_store(file, folder))


def save_images(files, folder):
    return [save_image(f, folder) for f in files if has_file(f)]


def save_document(file, folder):
    """Store a document upload. Returns ``(url, file_type)``."""
    if not has_file(file):
        raise UploadError('Please upload a file')
    limit = current_app.config['MAX_DOCUMENT_SIZE']
    if _file_size(file) > limit:
        raise UploadError(f'File size should be less than {limit // (1024 * 1024)}MB')
    file_type = detect_file_type(file.filename, file.mimetype)
    return public_url(_store(file, folder)), file_type


@storage_bp.route('/uploads/<path:key>')
def uploaded_file(key):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], key)
