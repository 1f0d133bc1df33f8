#!/usr/bin/env python3
# -*- mode:python; coding:utf-8; -*-

"""
CrowdStrike Falcon sensor deployment node for managed Macs.
"""

import os
import sys

from sensor_deploy.cli import init_args_parser, init_logger, init_sentry
from sensor_deploy.config import SensorDeployConfig
from sensor_deploy.falcon_api import FalconApiClient
from sensor_deploy.installer import AgentInstaller
from sensor_deploy.notifier import WebhookNotifier
from sensor_deploy.system import collect_machine_info
from sensor_deploy.uninstaller import AgentUninstaller
from sensor_deploy.utils.config import locate_config_file


def load_config(args_parser, config_path):
    try:
        config_file = locate_config_file('sensor_deploy', config_path)
        config = SensorDeployConfig(
            config_file,
            client_id=os.environ.get('FALCON_CLIENT_ID'),
            client_secret=os.environ.get('FALCON_CLIENT_SECRET'),
        )
    except ValueError as e:
        args_parser.error('Configuration error: {0}'.format(e))
    return config, config_file


def build_workflow(action, config):
    machine = collect_machine_info()
    if action == 'install':
        title = config.install_title
    else:
        title = config.uninstall_title
    notifier = WebhookNotifier(
        title,
        machine,
        slack_url=config.slack_url,
        teams_url=config.teams_url,
        mosyle_url=config.mosyle_url,
    )
    if action == 'install':
        api_client = FalconApiClient(
            config.base_url,
            config.client_id,
            config.client_secret,
            timeout=config.request_timeout,
            chunk_size=config.download_chunk_size,
        )
        return AgentInstaller(config, notifier, api_client)
    return AgentUninstaller(config, notifier)


def main():
    args_parser = init_args_parser()
    args = args_parser.parse_args()
    config, config_file = load_config(args_parser, args.config)
    if args.action == 'install':
        log_file = config.install_log_file
    else:
        log_file = config.uninstall_log_file
    logger = init_logger(args.verbose, log_file)
    logger.debug(
        "Loaded %s",
        config_file if config_file else 'default configuration',
    )
    init_sentry(config)
    workflow = build_workflow(args.action, config)
    outcome = workflow.execute()
    return outcome.exit_code


if __name__ == '__main__':
    sys.exit(main())
