import hashlib
import os

import pytest

from sensor_deploy.utils import file_utils


def test_hash_file(fs):
    content = b'sensor' * 100000
    fs.create_file('/tmp/sensor.pkg', contents=content)

    checksum = file_utils.hash_file('/tmp/sensor.pkg', buff_size=4096)

    assert checksum == hashlib.sha256(content).hexdigest()


def test_safe_remove(fs):
    fs.create_file('/tmp/sensor.pkg')

    assert file_utils.safe_remove('/tmp/sensor.pkg') is True
    assert file_utils.safe_remove('/tmp/sensor.pkg') is False


def test_safe_remove_directory(fs):
    fs.create_dir('/tmp/sensor.pkg')

    assert file_utils.safe_remove('/tmp/sensor.pkg') is False
    assert os.path.isdir('/tmp/sensor.pkg')


@pytest.mark.parametrize('name, expected', [
    ('FalconSensor.pkg', 'FalconSensor.pkg'),
    ('FalconSensor_7.30.pkg', 'FalconSensor_7.30.pkg'),
    ('/tmp/../etc/FalconSensor.pkg', 'FalconSensor.pkg'),
    ('..\\..\\FalconSensor.pkg', 'FalconSensor.pkg'),
    ('Falcon Sensor;rm -rf.pkg', 'Falcon_Sensor_rm_-rf.pkg'),
    ('FalconSensor.pkg  ', 'FalconSensor.pkg'),
    ('FalconSensor.pkg$$', 'FalconSensor.pkg'),
    ('..', ''),
    ('', ''),
])
def test_sanitize_file_name(name, expected):
    assert file_utils.sanitize_file_name(name) == expected


def test_normalize_path(monkeypatch):
    monkeypatch.setenv('HOME', '/Users/jane')

    assert file_utils.normalize_path('~/falcon.yml') == \
        '/Users/jane/falcon.yml'
    assert file_utils.normalize_path('/tmp/./a/../b') == '/tmp/b'
    assert file_utils.normalize_path(None) is None
