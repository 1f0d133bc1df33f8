# -*- mode:python; coding:utf-8; -*-

"""
CrowdStrike Falcon REST API client used to fetch sensor installers.
"""

import logging
import urllib.parse

import requests

from sensor_deploy.errors import DownloadError, FalconApiError
from sensor_deploy.models import ArtifactDescriptor
from sensor_deploy.utils.file_utils import sanitize_file_name


__all__ = ['FalconApiClient']


class FalconApiClient(object):

    def __init__(self, base_url, client_id, client_secret, timeout=None,
                 chunk_size=1048576):
        self.__base_url = base_url.rstrip('/') + '/'
        self.__client_id = client_id
        self.__client_secret = client_secret
        self.__timeout = timeout
        self.__chunk_size = chunk_size
        self.__session = requests.Session()
        self.__session.headers.update({'Accept': 'application/json'})

    def _url(self, endpoint):
        return urllib.parse.urljoin(self.__base_url, endpoint)

    @staticmethod
    def _parse_response(response):
        """
        Extracts a JSON body from the API response.

        Raises
        ------
        FalconApiError
            If the body is empty, isn't valid JSON or reports errors.
        """
        if not response.content:
            raise FalconApiError(
                f'empty response (HTTP {response.status_code})'
            )
        try:
            body = response.json()
        except ValueError:
            raise FalconApiError(
                f'malformed response (HTTP {response.status_code})'
            )
        if not isinstance(body, dict):
            raise FalconApiError('unexpected response structure')
        errors = body.get('errors')
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = (first.get('message', first)
                       if isinstance(first, dict) else first)
            raise FalconApiError(
                f'API error (HTTP {response.status_code}): {message}'
            )
        if response.status_code >= 400:
            raise FalconApiError(
                f'API request failed with HTTP {response.status_code}'
            )
        return body

    def request_token(self) -> str:
        """
        Exchanges the API client credentials for a bearer token.

        Returns
        -------
        str
            OAuth2 access token.

        Raises
        ------
        FalconApiError
            If the API didn't return a usable token.
        """
        try:
            response = self.__session.post(
                self._url('oauth2/token'),
                data={
                    'client_id': self.__client_id,
                    'client_secret': self.__client_secret,
                },
                timeout=self.__timeout,
            )
        except requests.RequestException as e:
            raise FalconApiError(f'token request failed: {e}')
        body = self._parse_response(response)
        token = body.get('access_token')
        if not token or not isinstance(token, str):
            raise FalconApiError('access token is missing in the response')
        return token

    def revoke_token(self, token):
        """
        Revokes the bearer token.

        Raises
        ------
        requests.RequestException
            If the revocation request failed.
        """
        response = self.__session.post(
            self._url('oauth2/revoke'),
            auth=(self.__client_id, self.__client_secret),
            data={'token': token},
            timeout=self.__timeout,
        )
        response.raise_for_status()

    def get_latest_installer(self, token, platform) -> ArtifactDescriptor:
        """
        Returns the latest sensor installer for the platform.

        Parameters
        ----------
        token : str
            Bearer token.
        platform : str
            Sensor platform name, e.g. "mac".

        Returns
        -------
        ArtifactDescriptor
            Installer with a sanitized file name and its SHA256 checksum.

        Raises
        ------
        FalconApiError
            If the catalog is unavailable or its answer is incomplete.
        """
        try:
            response = self.__session.get(
                self._url('sensors/combined/installers/v1'),
                params={
                    'offset': 0,
                    'limit': 1,
                    'filter': f'platform:"{platform}"',
                },
                headers={'Authorization': f'Bearer {token}'},
                timeout=self.__timeout,
            )
        except requests.RequestException as e:
            raise FalconApiError(f'installers request failed: {e}')
        body = self._parse_response(response)
        resources = body.get('resources') or []
        if (not isinstance(resources, list) or not resources
                or not isinstance(resources[0], dict)):
            raise FalconApiError(f'no {platform} installers are available')
        installer = resources[0]
        name = installer.get('name')
        sha256 = installer.get('sha256')
        if not isinstance(name, str) or not isinstance(sha256, str):
            raise FalconApiError(
                'installer name or SHA256 is missing in the response'
            )
        name = sanitize_file_name(name)
        sha256 = sha256.strip()
        if not name or not sha256:
            raise FalconApiError(
                'installer name or SHA256 is missing in the response'
            )
        return ArtifactDescriptor(name=name, sha256=sha256)

    def download_installer(self, token, sha256, file_path):
        """
        Downloads the installer identified by its checksum.

        Parameters
        ----------
        token : str
            Bearer token.
        sha256 : str
            Installer SHA256 checksum, the API uses it as an identifier.
        file_path : str
            Destination file path, an existing file is overwritten.

        Raises
        ------
        DownloadError
            If the server didn't answer with HTTP 200 or the body is
            shorter than announced.
        """
        try:
            response = self.__session.get(
                self._url('sensors/entities/download-installer/v1'),
                params={'id': sha256},
                headers={'Authorization': f'Bearer {token}'},
                stream=True,
                timeout=self.__timeout,
            )
        except requests.RequestException as e:
            raise DownloadError(f'download request failed: {e}')
        with response:
            if response.status_code != 200:
                raise DownloadError(
                    f'unexpected HTTP code {response.status_code}',
                    status_code=response.status_code,
                )
            written = 0
            try:
                with open(file_path, 'wb') as fd:
                    for chunk in response.iter_content(self.__chunk_size):
                        fd.write(chunk)
                        written += len(chunk)
            except requests.RequestException as e:
                raise DownloadError(
                    f'download interrupted: {e}',
                    status_code=response.status_code,
                )
            # Content-Length counts encoded bytes
            expected = response.headers.get('Content-Length')
            if response.headers.get('Content-Encoding'):
                expected = None
            if expected and expected.isdigit() and int(expected) != written:
                raise DownloadError(
                    f'truncated download: got {written} of {expected} bytes',
                    status_code=response.status_code,
                )
        logging.debug('%d bytes were saved to %s', written, file_path)
