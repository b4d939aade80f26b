"""Application data locations"""

import os
from pathlib import Path

APP_DIR_NAME = 'Clipstash'


def get_data_dir() -> Path:
    """
    Directory holding the database, user settings and logs

    ``CLIPSTASH_HOME`` wins, then ``%APPDATA%/Clipstash`` on Windows, then
    ``~/.clipstash``.
    """
    override = os.environ.get('CLIPSTASH_HOME')
    if override:
        path = Path(override)
    elif os.environ.get('APPDATA'):
        path = Path(os.environ['APPDATA']) / APP_DIR_NAME
    else:
        path = Path.home() / '.clipstash'

    path.mkdir(parents=True, exist_ok=True)
    return path
