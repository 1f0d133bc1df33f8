# -*- mode:python; coding:utf-8; -*-

import enum

from pydantic import BaseModel


__all__ = ["ArtifactDescriptor", "RunStatus", "RunOutcome", "MachineInfo"]


class ArtifactDescriptor(BaseModel):

    model_config = {"frozen": True}

    name: str
    sha256: str


class RunStatus(str, enum.Enum):
    SUCCESS = "Success"
    WARNING = "Warning"
    ERROR = "Error"


class RunOutcome(BaseModel):

    status: RunStatus
    details: str

    @property
    def exit_code(self) -> int:
        return 1 if self.status == RunStatus.ERROR else 0


class MachineInfo(BaseModel):

    computer_name: str = "Unknown"
    serial_number: str = "Unknown"
    logged_in_user: str = "Unknown"
    os_version: str = "Unknown"
    os_build: str = "Unknown"
    udid: str = "Unknown"
