# -*- mode:python; coding:utf-8; -*-

"""
Falcon sensor deployment node error classes.
"""

__all__ = [
    'FalconDeployError',
    'ConfigurationError',
    'TransientNetworkError',
    'FalconApiError',
    'DownloadError',
    'RetriesExhaustedError',
    'IntegrityError',
    'InstallError',
    'UninstallError',
]


class FalconDeployError(Exception):
    pass


class ConfigurationError(FalconDeployError):
    pass


class TransientNetworkError(FalconDeployError):
    pass


class FalconApiError(TransientNetworkError):
    pass


class DownloadError(TransientNetworkError):

    def __init__(self, message, status_code=None):
        super(DownloadError, self).__init__(message)
        self.status_code = status_code


class RetriesExhaustedError(TransientNetworkError):

    def __init__(self, message, last_error=None):
        super(RetriesExhaustedError, self).__init__(message)
        self.last_error = last_error


class IntegrityError(FalconDeployError):
    pass


class InstallError(FalconDeployError):
    pass


class UninstallError(FalconDeployError):
    pass
