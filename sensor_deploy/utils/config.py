# -*- mode:python; coding:utf-8; -*-

"""Falcon sensor deployment node configuration file handling functions."""

import os

import cerberus
import yaml

from .file_utils import normalize_path

__all__ = ['BaseConfig', 'locate_config_file']


CONFIG_DIRS = ('~/.config/{component}', '/etc/{component}')


def locate_config_file(component, config_path=None):
    """
    Locates a component configuration file.

    Parameters
    ----------
    component : str
        Component name, used as the configuration directory and file name.
    config_path : str, optional
        Configuration file path specified by a user.

    Returns
    -------
    str or None
        Configuration file path or None if there is no configuration file
        and the defaults should be used.

    Raises
    ------
    ValueError
        If the user specified configuration file doesn't exist.
    """
    if config_path:
        config_path = normalize_path(config_path)
        if not os.path.exists(config_path):
            raise ValueError(
                'configuration file {0} is not found'.format(config_path)
            )
        return config_path
    for config_dir in CONFIG_DIRS:
        config_path = normalize_path(os.path.join(
            config_dir.format(component=component), f'{component}.yml'
        ))
        if os.path.exists(config_path):
            return config_path
    return None


class BaseConfig(object):

    def __init__(self, default_config, config_file=None, schema=None,
                 **cmd_args):
        """
        Configuration object initialization.

        Parameters
        ----------
        default_config : dict
            Default configuration values.
        config_file : str, optional
            YAML configuration file path.
        schema : dict, optional
            Cerberus validation schema.
        cmd_args : dict
            Command line (or environment) overrides, None values are ignored.

        Raises
        ------
        ValueError
            If the configuration file can't be parsed or the resulting
            configuration doesn't match the schema.
        """
        config = default_config.copy()
        if config_file:
            config.update(self.__load_config_file(config_file))
        config.update({key: value for key, value in cmd_args.items()
                       if value is not None})
        if schema:
            validator = cerberus.Validator(schema)
            if not validator.validate(config):
                errors = '; '.join(
                    f'{key}: {", ".join(str(e) for e in messages)}'
                    for key, messages in sorted(validator.errors.items())
                )
                raise ValueError(errors)
            config = validator.document
        self.__config = config

    @staticmethod
    def __load_config_file(config_file):
        try:
            with open(config_file, 'r') as fd:
                loaded = yaml.safe_load(fd)
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f'cannot load {config_file}: {e}')
        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ValueError(f'{config_file} must contain a mapping')
        return loaded

    def __getattr__(self, item):
        if item.startswith('_'):
            raise AttributeError(item)
        try:
            return self.__config[item]
        except KeyError:
            raise AttributeError(
                "'{0}' object has no attribute '{1}'".format(
                    self.__class__.__name__, item
                )
            )

    def as_dict(self):
        return self.__config.copy()
