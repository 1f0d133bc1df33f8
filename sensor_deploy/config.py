# -*- mode:python; coding:utf-8; -*-

"""
Falcon sensor deployment node configuration storage.
"""

from .utils.config import BaseConfig
from .utils.file_utils import normalize_path

__all__ = ["SensorDeployConfig"]


DEFAULT_BASE_URL = "https://api.us-2.crowdstrike.com"
DEFAULT_PLATFORM = "mac"
DEFAULT_INSTALL_MARKER = "/Applications/Falcon.app"
DEFAULT_DOWNLOAD_DIR = "/private/tmp"
DEFAULT_INSTALLER_PATH = "/usr/sbin/installer"
DEFAULT_DOWNLOAD_CHUNK_SIZE = 1048576  # 1 MiB
DEFAULT_MOSYLE_URL = "https://mybusiness.mosyle.com"
DEFAULT_INSTALL_TITLE = "CrowdStrike Falcon Installation"
DEFAULT_UNINSTALL_TITLE = "CrowdStrike Falcon Uninstallation"
DEFAULT_INSTALL_LOG_FILE = "/var/log/crowdstrike_install.log"
DEFAULT_UNINSTALL_LOG_FILE = "/var/log/crowdstrike_uninstall.log"
DEFAULT_SENTRY_DSN = ""
DEFAULT_SENTRY_ENVIRONMENT = "dev"
DEFAULT_SENTRY_TRACES_SAMPLE_RATE = 0.2

FALCONCTL_RELATIVE_PATH = "Contents/Resources/falconctl"
PLACEHOLDER_CREDENTIALS = ("", "xxx")


class SensorDeployConfig(BaseConfig):
    def __init__(self, config_file=None, **cmd_args):
        """
        Sensor deployment node configuration initialization.

        Parameters
        ----------
        config_file : str, optional
            Configuration file path.
        cmd_args : dict
            Command line arguments and environment overrides.
        """
        default_config = {
            "client_id": "",
            "client_secret": "",
            "base_url": DEFAULT_BASE_URL,
            "platform": DEFAULT_PLATFORM,
            "install_marker": DEFAULT_INSTALL_MARKER,
            "download_dir": DEFAULT_DOWNLOAD_DIR,
            "installer_path": DEFAULT_INSTALLER_PATH,
            "falconctl_path": None,
            "auth_attempts": 3,
            "auth_delay": 3,
            "catalog_attempts": 3,
            "catalog_delay": 3,
            "download_attempts": 10,
            "download_delay": 5,
            "download_chunk_size": DEFAULT_DOWNLOAD_CHUNK_SIZE,
            "request_timeout": None,
            "uninstall_settle_delay": 2,
            "slack_url": "",
            "teams_url": "",
            "mosyle_url": DEFAULT_MOSYLE_URL,
            "install_title": DEFAULT_INSTALL_TITLE,
            "uninstall_title": DEFAULT_UNINSTALL_TITLE,
            "install_log_file": DEFAULT_INSTALL_LOG_FILE,
            "uninstall_log_file": DEFAULT_UNINSTALL_LOG_FILE,
            "sentry_dsn": DEFAULT_SENTRY_DSN,
            "sentry_environment": DEFAULT_SENTRY_ENVIRONMENT,
            "sentry_traces_sample_rate": DEFAULT_SENTRY_TRACES_SAMPLE_RATE,
        }
        schema = {
            "client_id": {"type": "string", "nullable": False},
            "client_secret": {"type": "string", "nullable": False},
            "base_url": {"type": "string", "required": True, "empty": False},
            "platform": {"type": "string", "required": True, "empty": False},
            "install_marker": {"type": "string", "required": True,
                               "coerce": normalize_path},
            "download_dir": {"type": "string", "required": True,
                             "coerce": normalize_path},
            "installer_path": {"type": "string", "required": True},
            "falconctl_path": {"type": "string", "nullable": True},
            "auth_attempts": {"type": "integer", "min": 1},
            "auth_delay": {"type": "number", "min": 0},
            "catalog_attempts": {"type": "integer", "min": 1},
            "catalog_delay": {"type": "number", "min": 0},
            "download_attempts": {"type": "integer", "min": 1},
            "download_delay": {"type": "number", "min": 0},
            "download_chunk_size": {"type": "integer", "min": 1},
            "request_timeout": {"type": "number", "nullable": True, "min": 0},
            "uninstall_settle_delay": {"type": "number", "min": 0},
            "slack_url": {"type": "string", "nullable": True},
            "teams_url": {"type": "string", "nullable": True},
            "mosyle_url": {"type": "string", "nullable": False},
            "install_title": {"type": "string", "nullable": False},
            "uninstall_title": {"type": "string", "nullable": False},
            "install_log_file": {"type": "string", "nullable": True},
            "uninstall_log_file": {"type": "string", "nullable": True},
            "sentry_dsn": {"type": "string", "nullable": True},
            "sentry_environment": {"type": "string", "nullable": True},
            "sentry_traces_sample_rate": {"type": "float", "nullable": True},
        }
        super(SensorDeployConfig, self).__init__(
            default_config, config_file, schema, **cmd_args
        )

    @property
    def credentials_configured(self) -> bool:
        return all(
            value.strip().lower() not in PLACEHOLDER_CREDENTIALS
            for value in (self.client_id, self.client_secret)
        )

    @property
    def falconctl(self) -> str:
        if self.falconctl_path:
            return self.falconctl_path
        return "/".join((self.install_marker.rstrip("/"),
                         FALCONCTL_RELATIVE_PATH))
