# -*- mode:python; coding:utf-8; -*-

"""
Slack and Microsoft Teams status reporting.
"""

import logging
import re
import typing

import requests
import requests.adapters
from pydantic import BaseModel, ConfigDict, Field
from urllib3 import Retry

from sensor_deploy.models import MachineInfo, RunOutcome, RunStatus

__all__ = ['WebhookNotifier', 'build_slack_payload', 'build_teams_payload']


SLACK_URL_RE = re.compile(r'^https://hooks\.slack\.com/services/')
TEAMS_URL_RE = re.compile(r'^https://[^/]+\.webhook\.office\.com/')
SUCCESS_COLOR = '00C851'
FAILURE_COLOR = 'D50000'
ALL_SERVICES = ('Slack', 'Teams')


class _SlackText(BaseModel):

    type: str
    text: str
    emoji: typing.Optional[bool] = None


class _SlackElement(BaseModel):

    type: str
    text: _SlackText
    style: typing.Optional[str] = None
    action_id: typing.Optional[str] = None
    url: typing.Optional[str] = None


class _SlackBlock(BaseModel):

    type: str
    text: typing.Optional[_SlackText] = None
    fields: typing.Optional[typing.List[_SlackText]] = None
    elements: typing.Optional[typing.List[_SlackElement]] = None


class SlackMessage(BaseModel):

    blocks: typing.List[_SlackBlock]


class _TeamsFact(BaseModel):

    name: str
    value: str


class _TeamsSection(BaseModel):

    activityTitle: str
    facts: typing.List[_TeamsFact]
    markdown: bool = True


class _TeamsTarget(BaseModel):

    os: str = 'default'
    uri: str


class _TeamsAction(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field('OpenUri', alias='@type')
    name: str
    targets: typing.List[_TeamsTarget]


class TeamsMessageCard(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field('MessageCard', alias='@type')
    context: str = Field('http://schema.org/extensions', alias='@context')
    themeColor: str
    summary: str
    sections: typing.List[_TeamsSection]
    potentialAction: typing.List[_TeamsAction]


def build_slack_payload(title: str, outcome: RunOutcome,
                        machine: MachineInfo, device_url: str) -> dict:
    header = f'{title}: {outcome.status.value}'
    fields = [
        _SlackText(
            type='mrkdwn',
            text=(f'>*Serial Number & Name:*\n>{machine.serial_number} '
                  f'on {machine.computer_name}'),
        ),
        _SlackText(
            type='mrkdwn',
            text=(f'>*Operating System:*\n>{machine.os_version} '
                  f'({machine.os_build})'),
        ),
        _SlackText(type='mrkdwn',
                   text=f'>*Current User:*\n>{machine.logged_in_user}'),
        _SlackText(type='mrkdwn', text=f'>*Details:*\n>{outcome.details}'),
    ]
    message = SlackMessage(blocks=[
        _SlackBlock(type='header',
                    text=_SlackText(type='plain_text', text=header,
                                    emoji=True)),
        _SlackBlock(type='divider'),
        _SlackBlock(type='section', fields=fields),
        _SlackBlock(type='actions', elements=[
            _SlackElement(
                type='button',
                text=_SlackText(type='plain_text',
                                text='View computer in Mosyle', emoji=True),
                style='primary',
                action_id='actionId-0',
                url=device_url,
            ),
        ]),
    ])
    return message.model_dump(exclude_none=True)


def build_teams_payload(title: str, outcome: RunOutcome,
                        machine: MachineInfo, device_url: str) -> dict:
    header = f'{title}: {outcome.status.value}'
    card = TeamsMessageCard(
        themeColor=(SUCCESS_COLOR if outcome.status == RunStatus.SUCCESS
                    else FAILURE_COLOR),
        summary=header,
        sections=[_TeamsSection(
            activityTitle=header,
            facts=[
                _TeamsFact(
                    name='Computer:',
                    value=f'{machine.computer_name} ({machine.serial_number})',
                ),
                _TeamsFact(name='User:', value=machine.logged_in_user),
                _TeamsFact(
                    name='OS Version:',
                    value=f'{machine.os_version} ({machine.os_build})',
                ),
                _TeamsFact(name='Details:', value=outcome.details),
            ],
        )],
        potentialAction=[_TeamsAction(
            name='View in Mosyle',
            targets=[_TeamsTarget(uri=device_url)],
        )],
    )
    return card.model_dump(by_alias=True)


class WebhookNotifier(object):

    def __init__(self, title, machine: MachineInfo, slack_url=None,
                 teams_url=None, mosyle_url='https://mybusiness.mosyle.com',
                 timeout=30):
        self.__title = title
        self.__machine = machine
        self.__slack_url = slack_url or ''
        self.__teams_url = teams_url or ''
        self.__device_url = f'{mosyle_url.rstrip("/")}/#device_{machine.udid}'
        self.__timeout = timeout
        self.__session = self.__generate_request_session()

    @staticmethod
    def __generate_request_session():
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            allowed_methods=None,
            status_forcelist=(429, 500, 502, 503, 504),
            raise_on_status=False,
        )
        adapter = requests.adapters.HTTPAdapter(max_retries=retry_strategy)
        session = requests.Session()
        session.mount('https://', adapter)
        return session

    def notify(self, outcome: RunOutcome, services=ALL_SERVICES):
        """
        Sends the run outcome to the configured webhooks.

        Parameters
        ----------
        outcome : RunOutcome
            Outcome to report.
        services : tuple, optional
            Names of the services to report to, e.g. ("Slack",).

        Delivery problems are logged and never raised.
        """
        for service, url, pattern, builder in (
            ('Slack', self.__slack_url, SLACK_URL_RE, build_slack_payload),
            ('Teams', self.__teams_url, TEAMS_URL_RE, build_teams_payload),
        ):
            if service not in services:
                continue
            if not url:
                logging.info('%s URL not configured. Skipping %s report.',
                             service, service)
                continue
            if not pattern.match(url):
                logging.warning('Invalid %s URL format. Skipping %s report.',
                                service, service)
                continue
            payload = builder(self.__title, outcome, self.__machine,
                              self.__device_url)
            self._send(service, url, payload)

    def _send(self, service, url, payload):
        logging.info('Sending %s webhook', service)
        try:
            response = self.__session.post(url, json=payload,
                                           timeout=self.__timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logging.error('Cannot deliver %s report: %s', service, e)
