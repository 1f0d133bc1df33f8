# -*- mode:python; coding:utf-8; -*-

"""
Falcon sensor deployment node command line tool functions.
"""

import argparse
import logging

import sentry_sdk

__all__ = ["init_args_parser", "init_logger", "init_sentry"]


LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s]: %(message)s"
LOG_DATE_FORMAT = "%y.%m.%d %H:%M:%S"


def init_args_parser():
    """
    Sensor deployment command line arguments parser initialization.

    Returns
    -------
    argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="falcon-sensor-deploy",
        description="CrowdStrike Falcon sensor deployment for managed Macs",
    )
    parser.add_argument("-c", "--config", help="configuration file path")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="enable additional debug output",
    )
    parser.add_argument(
        "action", choices=("install", "uninstall"),
        help="lifecycle action to perform",
    )
    return parser


def init_logger(verbose, log_file=None):
    """
    Root logger initialization.

    Parameters
    ----------
    verbose : bool
        Enable debug output.
    log_file : str, optional
        File to append log records to in addition to stderr.

    Returns
    -------
    logging.Logger
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    logger = logging.getLogger()
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning(
                "Unable to write to log file %s, continuing without it: %s",
                log_file, e,
            )
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
    return logger


def init_sentry(config):
    if not config.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        traces_sample_rate=config.sentry_traces_sample_rate,
        environment=config.sentry_environment,
    )
