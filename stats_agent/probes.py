"""
Service status probe backed by ``systemctl is-active``.
"""

from enum import Enum

from stats_agent.log import get_logger
from stats_agent.runner import Command, CommandRunner, MonitoredService

logger = get_logger(__name__)

# Unit states systemctl reports for a unit that exists but is not active
STOPPED_STATES = frozenset({
    'inactive',
    'failed',
    'activating',
    'deactivating',
    'reloading',
    'maintenance',
})


class ServiceState(Enum):
    RUNNING = 'Running'
    STOPPED = 'Stopped'
    NOT_FOUND = 'Not Found'


class ServiceProbe:
    """Classifies a monitored service as running, stopped or not found"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def probe(self, service: MonitoredService) -> ServiceState:
        result = self.runner.run(Command.SERVICE_STATUS, service)

        # systemctl exits 3 for inactive units, so the output decides, not the status
        state = self._first_line(result.stdout)

        if state == 'active':
            return ServiceState.RUNNING
        if state in STOPPED_STATES:
            # Newer systemd also reports "inactive" for units that do not exist
            load = self.runner.run(Command.SERVICE_LOAD_STATE, service)
            if self._first_line(load.stdout) != 'not-found':
                return ServiceState.STOPPED
            state = 'not-found'

        logger.info(
            "Service status unavailable",
            extra={'context': {'service': service.key, 'unit': service.unit,
                               'output': state, 'error': result.error}}
        )
        return ServiceState.NOT_FOUND

    @staticmethod
    def _first_line(output: str) -> str:
        lines = output.strip().splitlines()
        return lines[0].strip() if lines else ''
