"""
Path helpers for building model URLs
"""

_NO_JOIN_PREFIXES = ('.', '/', 'http:', 'https:', 'file:')


def join(folder: str, file: str) -> str:
    """
    Join a base folder and a model file path.

    Absolute paths, relative paths starting with a dot and URLs are returned
    unchanged, as is any file when the folder is empty.
    """
    if not folder or file.startswith(_NO_JOIN_PREFIXES):
        return file
    separator = '' if folder.endswith('/') else '/'
    return f"{folder}{separator}{file}"


def short_model_name(model_url: str) -> str:
    """Last path segment of a model URL without its .json extension"""
    segments = model_url.split('/') if '/' in model_url else model_url.split('\\')
    return segments[-1].replace('.json', '')
