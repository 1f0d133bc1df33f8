# -*- mode:python; coding:utf-8; -*-

"""Falcon sensor deployment node file system utility functions."""

import hashlib
import logging
import os
import re

__all__ = [
    'hash_file',
    'normalize_path',
    'safe_remove',
    'sanitize_file_name',
]


def normalize_path(path):
    """
    Returns an absolute path with all variables and "~" expanded.

    Parameters
    ----------
    path : str
        Path to normalize.

    Returns
    -------
    str
        Normalized path.
    """
    if path:
        return os.path.abspath(os.path.expanduser(os.path.expandvars(path)))
    return path


def hash_file(file_path, hash_type='sha256', buff_size=1048576):
    """
    Returns a checksum of the specified file.

    Parameters
    ----------
    file_path : str
        File path.
    hash_type : str, optional
        Hash algorithm name supported by hashlib.
    buff_size : int, optional
        Number of bytes to read at once.

    Returns
    -------
    str
        Hex-encoded checksum.
    """
    hasher = hashlib.new(hash_type)
    with open(file_path, 'rb') as fd:
        buff = fd.read(buff_size)
        while len(buff):
            hasher.update(buff)
            buff = fd.read(buff_size)
    return hasher.hexdigest()


def safe_remove(file_path):
    """
    Removes the specified file if it exists.

    Returns
    -------
    bool
        True if the file was removed, False if there was nothing to remove
        or it could not be removed.
    """
    try:
        os.remove(file_path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logging.warning('Cannot remove %s: %s', file_path, e)
        return False
    logging.debug('%s was removed', file_path)
    return True


def sanitize_file_name(name):
    """
    Turns a vendor supplied file name into a safe local file name.

    Path components are dropped, characters other than letters, digits,
    dots, dashes and underscores are replaced with an underscore and
    trailing underscores or whitespace are trimmed.

    Parameters
    ----------
    name : str
        File name as reported by the API.

    Returns
    -------
    str
        Sanitized file name, may be empty.
    """
    base_name = os.path.basename(name.replace('\\', '/'))
    sanitized = re.sub(r'[^A-Za-z0-9._-]', '_', base_name)
    sanitized = sanitized.rstrip('_ \t\r\n')
    if sanitized in ('.', '..'):
        return ''
    return sanitized
