# -*- mode:python; coding:utf-8; -*-

"""
CrowdStrike Falcon sensor removal workflow.
"""

import logging
import os
import time

from sensor_deploy.errors import UninstallError
from sensor_deploy.models import RunOutcome, RunStatus
from sensor_deploy.system import (
    find_falcon_extensions,
    list_system_extensions,
    run_falconctl,
)
from sensor_deploy.workflow import Workflow

__all__ = ['AgentUninstaller']


class AgentUninstaller(Workflow):

    name = 'CrowdStrike Falcon sensor uninstallation'

    def is_installed(self) -> bool:
        return os.path.exists(self._config.install_marker)

    def _run(self) -> RunOutcome:
        if not self.is_installed():
            logging.info('CrowdStrike Falcon is not installed')
            return RunOutcome(
                status=RunStatus.WARNING,
                details=('CrowdStrike Falcon is not installed. '
                         'Nothing to uninstall.'),
            )
        if self._system_extension_present():
            logging.warning('System extension is still present on the '
                            'system, attempting uninstall anyway')
            self._report(RunOutcome(
                status=RunStatus.WARNING,
                details=('CrowdStrike system extension is still present on '
                         'the system. Attempting uninstall anyway.'),
            ), services=('Slack',))
        falconctl = self._config.falconctl
        if not os.path.isfile(falconctl):
            raise UninstallError(
                f'falconctl not found at {falconctl}. '
                'Cannot proceed with uninstallation.'
            )
        logging.info('Running uninstall command: %s uninstall', falconctl)
        code, output = run_falconctl(falconctl, 'uninstall')
        if code != 0:
            logging.error('Uninstall command failed with exit code %d:\n%s',
                          code, output)
            raise UninstallError(
                f'Uninstall command failed. Exit code: {code}. '
                f'Output: {output}'
            )
        logging.info('Uninstall command completed successfully')
        time.sleep(self._config.uninstall_settle_delay)
        if self.is_installed():
            logging.warning('Uninstall command succeeded but %s still '
                            'exists:\n%s', self._config.install_marker, output)
            return RunOutcome(
                status=RunStatus.WARNING,
                details=('Uninstall command succeeded but Falcon.app still '
                         'exists. Manual cleanup may be required. '
                         f'Output: {output}'),
            )
        logging.info('CrowdStrike Falcon sensor uninstallation verified')
        return RunOutcome(
            status=RunStatus.SUCCESS,
            details='CrowdStrike Falcon sensor was successfully uninstalled.',
        )

    @staticmethod
    def _system_extension_present() -> bool:
        logging.info('Checking for CrowdStrike system extensions')
        code, extensions = list_system_extensions()
        if code != 0:
            logging.warning('Could not list system extensions (exit code: '
                            '%d): %s', code, extensions)
            return False
        found = find_falcon_extensions(extensions)
        if not found:
            logging.info('No CrowdStrike system extensions found')
            return False
        logging.error('CrowdStrike system extension is still present:\n%s',
                      '\n'.join(found))
        if any('activated' in line and 'enabled' in line for line in found):
            logging.error('CrowdStrike system extension is activated and '
                          'enabled')
        return True
