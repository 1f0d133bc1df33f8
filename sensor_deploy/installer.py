# -*- mode:python; coding:utf-8; -*-

"""
CrowdStrike Falcon sensor installation workflow.
"""

import contextlib
import logging
import os

import requests

from sensor_deploy.errors import (
    ConfigurationError,
    DownloadError,
    FalconApiError,
    InstallError,
    IntegrityError,
    RetriesExhaustedError,
)
from sensor_deploy.models import ArtifactDescriptor, RunOutcome, RunStatus
from sensor_deploy.system import install_package
from sensor_deploy.utils.file_utils import hash_file, safe_remove
from sensor_deploy.utils.retry import call_with_retries
from sensor_deploy.workflow import Workflow

__all__ = ['AgentInstaller']


class AgentInstaller(Workflow):
    """
    Installs the sensor unless the installation marker is already present.

    The run goes through the following steps, any failure ends it with the
    Error outcome: check the marker, authenticate, resolve the latest
    installer, download it, verify its SHA256 checksum, install it and check
    the marker again. The bearer token is revoked right after the download
    step whatever its result was.
    """

    name = 'CrowdStrike Falcon sensor installation'

    def __init__(self, config, notifier, api_client):
        super(AgentInstaller, self).__init__(config, notifier)
        self.__api = api_client

    def is_installed(self) -> bool:
        return os.path.exists(self._config.install_marker)

    def _run(self) -> RunOutcome:
        if self.is_installed():
            logging.info('CrowdStrike Falcon is already installed')
            return RunOutcome(
                status=RunStatus.SUCCESS,
                details='CrowdStrike Falcon is already installed.',
            )
        with self._session_token() as token:
            artifact = self._resolve_artifact(token)
            logging.info('Found sensor: %s (SHA256: %s)',
                         artifact.name, artifact.sha256)
            pkg_path = os.path.join(self._config.download_dir, artifact.name)
            try:
                self._download(token, artifact, pkg_path)
            except BaseException:
                safe_remove(pkg_path)
                raise
        try:
            self._verify(artifact, pkg_path)
            self._install(pkg_path)
        finally:
            logging.info('Cleaning up temporary files')
            safe_remove(pkg_path)
        return self._confirm_installed()

    @contextlib.contextmanager
    def _session_token(self):
        token = self._authenticate()
        try:
            yield token
        finally:
            self._revoke(token)

    def _authenticate(self) -> str:
        if not self._config.credentials_configured:
            raise ConfigurationError(
                'CrowdStrike API credentials not configured.'
            )
        attempts = self._config.auth_attempts
        try:
            token = call_with_retries(
                self.__api.request_token,
                attempts,
                self._config.auth_delay,
                'Auth',
            )
        except RetriesExhaustedError as e:
            raise FalconApiError(
                'Failed to authenticate with CrowdStrike API after '
                f'{attempts} attempts.'
            ) from e
        logging.info('Authentication successful')
        return token

    def _revoke(self, token):
        logging.info('Revoking OAuth token')
        try:
            self.__api.revoke_token(token)
        except requests.RequestException as e:
            logging.warning('Cannot revoke OAuth token: %s', e)

    def _resolve_artifact(self, token) -> ArtifactDescriptor:
        attempts = self._config.catalog_attempts
        try:
            return call_with_retries(
                lambda: self.__api.get_latest_installer(
                    token, self._config.platform
                ),
                attempts,
                self._config.catalog_delay,
                'Sensor info',
            )
        except RetriesExhaustedError as e:
            raise FalconApiError(
                'Failed to retrieve sensor name or SHA256 from API after '
                f'{attempts} attempts.'
            ) from e

    def _download(self, token, artifact: ArtifactDescriptor, pkg_path):
        attempts = self._config.download_attempts
        logging.info('Downloading CrowdStrike Falcon sensor installer')
        try:
            call_with_retries(
                lambda: self.__api.download_installer(
                    token, artifact.sha256, pkg_path
                ),
                attempts,
                self._config.download_delay,
                'Download',
            )
        except RetriesExhaustedError as e:
            status_code = getattr(e.last_error, 'status_code', None)
            raise DownloadError(
                f'Download failed after {attempts} attempts. '
                f'Last HTTP code: {status_code or "none"}.',
                status_code=status_code,
            ) from e
        logging.info('Download successful')

    @staticmethod
    def _verify(artifact: ArtifactDescriptor, pkg_path):
        if not os.path.isfile(pkg_path):
            raise IntegrityError(
                f'Downloaded file {pkg_path} not found post-download.'
            )
        logging.info('Verifying downloaded file SHA256 hash')
        actual = hash_file(pkg_path, hash_type='sha256')
        if actual.lower() != artifact.sha256.lower():
            logging.error('SHA256 hash mismatch! Expected: %s, got: %s',
                          artifact.sha256, actual)
            safe_remove(pkg_path)
            raise IntegrityError(
                'SHA256 hash mismatch. File is corrupt or tampered with. '
                f'Expected: {artifact.sha256}. Got: {actual}.'
            )
        logging.info('SHA256 hash verified successfully')

    def _install(self, pkg_path):
        logging.info('Installing CrowdStrike Falcon sensor')
        code, output = install_package(pkg_path, self._config.installer_path)
        if code != 0:
            raise InstallError(
                f'Installation failed. Installer exit code: {code}. '
                f'Installer output: {output}'
            )
        logging.info('Installation completed successfully')

    def _confirm_installed(self) -> RunOutcome:
        if not self.is_installed():
            raise InstallError(
                'Installation verification failed after apparently '
                f'successful install: {self._config.install_marker} '
                'not found.'
            )
        logging.info('CrowdStrike Falcon sensor installation verified')
        return RunOutcome(
            status=RunStatus.SUCCESS,
            details='CrowdStrike Falcon sensor was successfully installed.',
        )
