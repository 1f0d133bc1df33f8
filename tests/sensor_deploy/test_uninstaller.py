import shutil
from unittest.mock import Mock, patch

from pyfakefs.fake_filesystem_unittest import TestCase

from sensor_deploy.config import SensorDeployConfig
from sensor_deploy.models import RunStatus
from sensor_deploy.uninstaller import AgentUninstaller


MARKER = '/Applications/Falcon.app'
FALCONCTL = '/Applications/Falcon.app/Contents/Resources/falconctl'
EXTENSIONS = (
    '1 extension(s)\n'
    '--- com.apple.system_extension.endpoint_security\n'
    'enabled\tactive\tteamID\tbundleID (version)\tname\t[state]\n'
    '*\t*\tX9E956P446\tcom.crowdstrike.falcon.Agent (7.30/202.02)\t'
    'Falcon Sensor\t[activated enabled]\n'
)


class TestUninstaller(TestCase):

    def setUp(self):
        self.setUpPyfakefs()
        self.config = SensorDeployConfig(uninstall_settle_delay=0)
        self.notifier = Mock()
        self.uninstaller = AgentUninstaller(self.config, self.notifier)
        patcher = patch('sensor_deploy.uninstaller.list_system_extensions',
                        return_value=(0, '0 extension(s)\n'))
        self.list_system_extensions = patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, falconctl_result=(0, ''), remove_marker=True):
        def falconctl(path, *args):
            if remove_marker:
                shutil.rmtree(MARKER)
            return falconctl_result

        with patch('sensor_deploy.uninstaller.run_falconctl',
                   side_effect=falconctl) as run_falconctl:
            outcome = self.uninstaller.execute()
        return outcome, run_falconctl

    def test_not_installed(self):
        outcome, run_falconctl = self._run()

        assert outcome.status == RunStatus.WARNING
        assert 'Nothing to uninstall' in outcome.details
        run_falconctl.assert_not_called()
        self.notifier.notify.assert_called_once_with(outcome)

    def test_uninstall(self):
        self.fs.create_file(FALCONCTL)

        outcome, run_falconctl = self._run()

        assert outcome.status == RunStatus.SUCCESS
        run_falconctl.assert_called_once_with(FALCONCTL, 'uninstall')
        self.notifier.notify.assert_called_once_with(outcome)

    def test_marker_left_behind(self):
        self.fs.create_file(FALCONCTL)

        outcome, _ = self._run(falconctl_result=(0, 'done'),
                               remove_marker=False)

        assert outcome.status == RunStatus.WARNING
        assert outcome.exit_code == 0
        assert 'Manual cleanup may be required' in outcome.details
        assert outcome.details.endswith('Output: done')

    def test_uninstall_failure(self):
        self.fs.create_file(FALCONCTL)

        outcome, _ = self._run(
            falconctl_result=(4, 'Error: Maintenance token required'),
            remove_marker=False,
        )

        assert outcome.status == RunStatus.ERROR
        assert outcome.exit_code == 1
        assert 'Exit code: 4' in outcome.details
        assert 'Maintenance token required' in outcome.details

    def test_falconctl_missing(self):
        self.fs.create_dir(MARKER)

        outcome, run_falconctl = self._run()

        assert outcome.status == RunStatus.ERROR
        assert 'falconctl not found' in outcome.details
        run_falconctl.assert_not_called()

    def test_system_extension_present(self):
        self.fs.create_file(FALCONCTL)
        self.list_system_extensions.return_value = (0, EXTENSIONS)

        outcome, run_falconctl = self._run()

        assert outcome.status == RunStatus.SUCCESS
        run_falconctl.assert_called_once()
        interim, final = self.notifier.notify.call_args_list
        assert interim.args[0].status == RunStatus.WARNING
        assert interim.kwargs == {'services': ('Slack',)}
        assert final.args == (outcome,)
        assert final.kwargs == {}

    def test_system_extensions_unavailable(self):
        self.fs.create_file(FALCONCTL)
        self.list_system_extensions.return_value = (1, 'not permitted')

        outcome, _ = self._run()

        assert outcome.status == RunStatus.SUCCESS
        self.notifier.notify.assert_called_once_with(outcome)
