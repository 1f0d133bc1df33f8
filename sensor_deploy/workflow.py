# -*- mode:python; coding:utf-8; -*-

import logging

from sensor_deploy.errors import FalconDeployError
from sensor_deploy.models import RunOutcome, RunStatus

__all__ = ['Workflow']


class Workflow(object):
    """
    Base class of the deployment workflows.

    Subclasses implement ``_run`` returning a RunOutcome or raising a
    FalconDeployError. ``execute`` turns every exit path into exactly one
    outcome and reports it.
    """

    name = 'workflow'

    def __init__(self, config, notifier):
        self._config = config
        self._notifier = notifier

    def _run(self) -> RunOutcome:
        raise NotImplementedError()

    def execute(self) -> RunOutcome:
        outcome = RunOutcome(status=RunStatus.ERROR,
                             details='Script exited unexpectedly.')
        logging.info('Starting %s', self.name)
        try:
            outcome = self._run()
        except FalconDeployError as e:
            logging.error('%s failed: %s', self.name, e)
            outcome = RunOutcome(status=RunStatus.ERROR, details=str(e))
        except Exception as e:
            logging.exception('%s failed unexpectedly: %s', self.name, e)
            outcome = RunOutcome(
                status=RunStatus.ERROR,
                details=f'Script exited unexpectedly: {e}',
            )
        finally:
            logging.info('%s finished: %s - %s', self.name,
                         outcome.status.value, outcome.details)
            self._report(outcome)
        return outcome

    def _report(self, outcome, **kwargs):
        try:
            self._notifier.notify(outcome, **kwargs)
        except Exception as e:
            logging.exception('Cannot report %s outcome: %s', self.name, e)
