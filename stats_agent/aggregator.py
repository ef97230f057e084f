"""
Fans out the probes and collectors concurrently and assembles a snapshot.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping

from stats_agent.collectors import (
    CPU_UNAVAILABLE,
    EMPTY_MEMORY,
    CpuCollector,
    MemoryCollector,
    MemoryInfo,
)
from stats_agent.config import AgentConfig
from stats_agent.log import get_logger
from stats_agent.probes import ServiceProbe, ServiceState
from stats_agent.runner import CommandRunner, MonitoredService

logger = get_logger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix"""
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f'{now.microsecond // 1000:03d}Z'


@dataclass(frozen=True)
class StatsSnapshot:
    """Result of one collection cycle"""
    cpu: str
    memory: MemoryInfo
    services: Mapping[MonitoredService, ServiceState]
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cpu': self.cpu,
            'memory': self.memory.to_dict(),
            'services': {
                service.key: self.services.get(service, ServiceState.NOT_FOUND).value
                for service in MonitoredService
            },
            'timestamp': self.timestamp,
        }


class StatsAggregator:
    """Runs one fresh collection cycle per call; nothing is cached"""

    def __init__(self, probe: ServiceProbe, cpu: CpuCollector, memory: MemoryCollector):
        self.probe = probe
        self.cpu = cpu
        self.memory = memory

    @classmethod
    def from_config(cls, config: AgentConfig) -> 'StatsAggregator':
        runner = CommandRunner(timeout=config.command_timeout)
        return cls(ServiceProbe(runner), CpuCollector(runner), MemoryCollector(runner))

    def aggregate(self) -> StatsSnapshot:
        tasks: Dict[str, Callable[[], Any]] = {
            'cpu': self.cpu.collect,
            'memory': self.memory.collect,
        }
        for service in MonitoredService:
            tasks[service.key] = lambda service=service: self.probe.probe(service)

        with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix='collect') as pool:
            futures = {name: pool.submit(task) for name, task in tasks.items()}
            wait(futures.values())

        return StatsSnapshot(
            cpu=self._result(futures['cpu'], 'cpu', CPU_UNAVAILABLE),
            memory=self._result(futures['memory'], 'memory', EMPTY_MEMORY),
            services={
                service: self._result(futures[service.key], service.key, ServiceState.NOT_FOUND)
                for service in MonitoredService
            },
            timestamp=utc_timestamp()
        )

    def _result(self, future: Future, name: str, sentinel: Any) -> Any:
        """Unwrap a finished task, substituting the sentinel if it raised"""
        error = future.exception()
        if error is None:
            return future.result()
        logger.error(
            "Collection task failed",
            exc_info=(type(error), error, error.__traceback__),
            extra={'context': {'task': name}}
        )
        return sentinel
