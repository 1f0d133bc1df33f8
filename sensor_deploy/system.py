# -*- mode:python; coding:utf-8; -*-

"""
macOS host commands used by the sensor deployment workflows.
"""

import logging
import re
import typing

import plumbum

from sensor_deploy.models import MachineInfo

__all__ = [
    'collect_machine_info',
    'find_falcon_extensions',
    'install_package',
    'list_system_extensions',
    'run_falconctl',
]


FALCON_EXTENSION_ID = 'com.crowdstrike.falcon.Agent'
COMMAND_NOT_FOUND_CODE = 127


def _run_command(
        binary: str,
        args: typing.Sequence[str] = (),
        stdin: typing.Optional[str] = None,
) -> typing.Tuple[int, str, str]:
    """
    Runs a command and returns its exit code, stdout and stderr.

    A missing binary is reported with the 127 exit code instead of an
    exception, the same way a shell does it.
    """
    try:
        command = plumbum.local[binary][tuple(args)]
    except plumbum.CommandNotFound as e:
        return COMMAND_NOT_FOUND_CODE, '', f'command not found: {e}'
    if stdin is not None:
        command = command << stdin
    try:
        return command.run(retcode=None)
    except OSError as e:
        return COMMAND_NOT_FOUND_CODE, '', str(e)


def _command_output(binary, args=(), stdin=None) -> str:
    code, out, err = _run_command(binary, args, stdin)
    if code != 0:
        logging.debug('%s %s failed with %s exit code: %s',
                      binary, ' '.join(args), code, err.strip())
        return ''
    return out


def _search(pattern, text) -> typing.Optional[str]:
    match = re.search(pattern, text, re.MULTILINE)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def collect_machine_info() -> MachineInfo:
    """
    Collects the host identity used in the status reports.

    Returns
    -------
    MachineInfo
        Machine information, unavailable fields are left "Unknown".
    """
    info = {}
    computer_name = _command_output('scutil', ('--get', 'ComputerName'))
    if computer_name.strip():
        info['computer_name'] = computer_name.strip()
    platform_info = _command_output(
        'ioreg', ('-rd1', '-c', 'IOPlatformExpertDevice')
    )
    for field, key in (('serial_number', 'IOPlatformSerialNumber'),
                       ('udid', 'IOPlatformUUID')):
        value = _search(rf'"{key}"\s*=\s*"([^"]*)"', platform_info)
        if value:
            info[field] = value
    console_user = _search(
        r'^\s*Name\s*:\s*(\S+)',
        _command_output('scutil', stdin='show State:/Users/ConsoleUser\n'),
    )
    if console_user:
        info['logged_in_user'] = console_user
    for field, flag in (('os_version', '-productVersion'),
                        ('os_build', '-buildVersion')):
        value = _command_output('sw_vers', (flag,)).strip()
        if value:
            info[field] = value
    return MachineInfo(**info)


def install_package(pkg_path, installer_path='/usr/sbin/installer'):
    """
    Installs a macOS package on the boot volume.

    Parameters
    ----------
    pkg_path : str
        Package file path.
    installer_path : str, optional
        Platform installer binary path.

    Returns
    -------
    tuple
        Installer exit code and its combined output.
    """
    logging.info('Running %s -target / -pkg %s', installer_path, pkg_path)
    code, out, err = _run_command(
        installer_path, ('-target', '/', '-pkg', pkg_path)
    )
    output = '\n'.join(part.strip() for part in (out, err) if part.strip())
    logging.debug('Installer result: %d\n%s', code, output)
    return code, output


def list_system_extensions() -> typing.Tuple[int, str]:
    """
    Returns the systemextensionsctl exit code and the list of extensions.
    """
    code, out, err = _run_command('systemextensionsctl', ('list',))
    return code, out if code == 0 else '\n'.join((out, err)).strip()


def find_falcon_extensions(extensions_list) -> typing.List[str]:
    return [line for line in extensions_list.splitlines()
            if FALCON_EXTENSION_ID.lower() in line.lower()]


def run_falconctl(falconctl_path, *args) -> typing.Tuple[int, str]:
    """
    Runs the Falcon control tool.

    Returns
    -------
    tuple
        Exit code and combined output.
    """
    code, out, err = _run_command(falconctl_path, args)
    output = '\n'.join(part.strip() for part in (out, err) if part.strip())
    return code, output
