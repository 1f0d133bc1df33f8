import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from sensor_deploy.errors import DownloadError, FalconApiError
from sensor_deploy.falcon_api import FalconApiClient
from sensor_deploy.models import ArtifactDescriptor


BASE_URL = 'https://api.us-2.crowdstrike.com'


def make_response(status_code=200, body=None, content=None, headers=None,
                  chunks=()):
    response = MagicMock()
    response.status_code = status_code
    if content is None:
        content = json.dumps(body).encode() if body is not None else b''
    response.content = content
    if body is not None:
        response.json.return_value = body
    else:
        response.json.side_effect = ValueError('no JSON')
    response.headers = headers or {}
    response.iter_content.return_value = iter(chunks)
    response.__enter__.return_value = response
    return response


@pytest.fixture
def session():
    with patch('sensor_deploy.falcon_api.requests.Session') as session_cls:
        yield session_cls.return_value


@pytest.fixture
def client(session):
    return FalconApiClient(BASE_URL, 'client', 'secret', timeout=15)


def test_request_token(client, session):
    session.post.return_value = make_response(
        201, {'access_token': 'token', 'expires_in': 1799}
    )

    assert client.request_token() == 'token'
    session.post.assert_called_once_with(
        f'{BASE_URL}/oauth2/token',
        data={'client_id': 'client', 'client_secret': 'secret'},
        timeout=15,
    )


@pytest.mark.parametrize('response', [
    make_response(201, content=b''),
    make_response(500, content=b'<html>oops</html>'),
    make_response(403, {'errors': [{'code': 403, 'message': 'denied'}]}),
    make_response(201, {'token_type': 'bearer'}),
    make_response(201, {'access_token': {'value': 'token'}}),
    make_response(201, {'errors': {'message': 'invalid_client'}}),
])
def test_request_token_errors(client, session, response):
    session.post.return_value = response

    with pytest.raises(FalconApiError):
        client.request_token()


def test_request_token_connection_error(client, session):
    session.post.side_effect = requests.ConnectionError('offline')

    with pytest.raises(FalconApiError):
        client.request_token()


def test_revoke_token(client, session):
    response = make_response(200, {'resources': []})
    session.post.return_value = response

    client.revoke_token('token')

    session.post.assert_called_once_with(
        f'{BASE_URL}/oauth2/revoke',
        auth=('client', 'secret'),
        data={'token': 'token'},
        timeout=15,
    )
    response.raise_for_status.assert_called_once()


def test_get_latest_installer(client, session):
    session.get.return_value = make_response(200, {
        'resources': [{'name': '../FalconSensor (1).pkg', 'sha256': 'abc123'}],
        'errors': [],
    })

    artifact = client.get_latest_installer('token', 'mac')

    assert artifact == ArtifactDescriptor(name='FalconSensor__1_.pkg',
                                          sha256='abc123')
    _, kwargs = session.get.call_args
    assert kwargs['params'] == {
        'offset': 0, 'limit': 1, 'filter': 'platform:"mac"',
    }
    assert kwargs['headers'] == {'Authorization': 'Bearer token'}


@pytest.mark.parametrize('body', [
    {'resources': []},
    {'resources': [{'name': 'FalconSensor.pkg', 'sha256': ''}]},
    {'resources': [{'name': '', 'sha256': 'abc123'}]},
    {'resources': [], 'errors': [{'code': 401, 'message': 'token expired'}]},
    {'errors': {'message': 'denied'}},
    {'resources': {'name': 'FalconSensor.pkg'}},
    {'resources': [{'name': 123, 'sha256': 'abc123'}]},
    {'resources': [{'name': 'FalconSensor.pkg', 'sha256': ['abc123']}]},
])
def test_get_latest_installer_incomplete(client, session, body):
    session.get.return_value = make_response(200, body)

    with pytest.raises(FalconApiError):
        client.get_latest_installer('token', 'mac')


def test_download_installer(client, session, tmp_path):
    file_path = tmp_path / 'FalconSensor.pkg'
    session.get.return_value = make_response(
        200, content=b'x', headers={'Content-Length': '6'},
        chunks=(b'sen', b'sor'),
    )

    client.download_installer('token', 'abc123', str(file_path))

    assert file_path.read_bytes() == b'sensor'
    _, kwargs = session.get.call_args
    assert kwargs['params'] == {'id': 'abc123'}
    assert kwargs['stream'] is True


def test_download_installer_http_error(client, session, tmp_path):
    session.get.return_value = make_response(404, content=b'not found')

    with pytest.raises(DownloadError) as exc_info:
        client.download_installer('token', 'abc123',
                                  str(tmp_path / 'sensor.pkg'))

    assert exc_info.value.status_code == 404
    assert not (tmp_path / 'sensor.pkg').exists()


def test_download_installer_truncated(client, session, tmp_path):
    session.get.return_value = make_response(
        200, content=b'x', headers={'Content-Length': '100'},
        chunks=(b'sensor',),
    )

    with pytest.raises(DownloadError) as exc_info:
        client.download_installer('token', 'abc123',
                                  str(tmp_path / 'sensor.pkg'))

    assert exc_info.value.status_code == 200
