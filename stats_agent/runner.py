"""
Runs the fixed set of host commands the agent is allowed to execute.
"""

import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from stats_agent.log import get_logger

logger = get_logger(__name__)


class MonitoredService(Enum):
    """Database services reported by the agent: identifier -> systemd unit"""
    MYSQL = ('mysql', 'mysql')
    POSTGRESQL = ('postgresql', 'postgresql')
    MONGODB = ('mongodb', 'mongod')

    def __init__(self, key: str, unit: str):
        self.key = key
        self.unit = unit


class Command(Enum):
    """Host command templates; the systemctl queries take a unit argument"""
    SERVICE_STATUS = ('systemctl', 'is-active')
    SERVICE_LOAD_STATE = ('systemctl', 'show', '--property=LoadState', '--value')
    CPU_REPORT = ('top', '-bn1')
    MEMORY_REPORT = ('free', '-m')

    @property
    def takes_service(self) -> bool:
        return self in (Command.SERVICE_STATUS, Command.SERVICE_LOAD_STATE)

    def argv(self, service: Optional[MonitoredService] = None) -> List[str]:
        args = list(self.value)
        if self.takes_service:
            if not isinstance(service, MonitoredService):
                raise ValueError(f"{self.name} requires a MonitoredService")
            args.append(service.unit)
        elif service is not None:
            raise ValueError(f"{self.name} does not take a service argument")
        return args


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command invocation"""
    stdout: str
    stderr: str = ''
    returncode: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CommandRunner:
    """Executes host commands with a per-invocation timeout"""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    def run(self, command: Command, service: Optional[MonitoredService] = None) -> CommandResult:
        """
        Run a command and capture its output.

        Non-zero exit, spawn failure and timeout are reported through
        CommandResult.error instead of being raised. No retries.
        """
        argv = command.argv(service)
        context = {'command': ' '.join(argv)}

        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out", extra={'context': {**context, 'timeout': self.timeout}})
            return CommandResult(stdout='', error=f"timed out after {self.timeout:g}s")
        except OSError as e:
            logger.warning("Command could not be started", extra={'context': {**context, 'error': str(e)}})
            return CommandResult(stdout='', error=str(e))

        if proc.returncode != 0:
            logger.warning(
                "Command exited with non-zero status",
                extra={'context': {**context, 'returncode': proc.returncode, 'stderr': proc.stderr.strip()}}
            )
            return CommandResult(
                stdout=proc.stdout,
                stderr=proc.stderr,
                returncode=proc.returncode,
                error=f"exit status {proc.returncode}"
            )

        logger.debug("Command succeeded", extra={'context': context})
        return CommandResult(stdout=proc.stdout, stderr=proc.stderr, returncode=0)
