# -*- mode:python; coding:utf-8; -*-

import logging
import time

from ..errors import RetriesExhaustedError, TransientNetworkError

__all__ = ['call_with_retries']


def call_with_retries(func, attempts, delay, description,
                      retry_on=(TransientNetworkError,)):
    """
    Calls a function until it succeeds or the attempts are exhausted.

    Parameters
    ----------
    func : callable
        Function without arguments to call.
    attempts : int
        Maximum number of calls.
    delay : int or float
        Number of seconds to sleep between failed attempts.
    description : str
        Human readable step name used in log messages.
    retry_on : tuple, optional
        Exception classes that mark an attempt as failed. Any other
        exception is propagated immediately.

    Returns
    -------
    object
        Whatever the successful call returned.

    Raises
    ------
    RetriesExhaustedError
        If every attempt failed.
    """
    last_exc = None
    for attempt in range(1, attempts + 1):
        logging.info('%s attempt: [%d / %d]', description, attempt, attempts)
        try:
            return func()
        except retry_on as e:
            last_exc = e
            logging.warning(
                '%s attempt %d failed: %s', description, attempt, e
            )
        if attempt < attempts:
            time.sleep(delay)
    raise RetriesExhaustedError(
        f'{description} failed after {attempts} attempts',
        last_error=last_exc,
    )
