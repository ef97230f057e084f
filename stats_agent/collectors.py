"""
Collectors for CPU and memory usage, parsed from ``top`` and ``free`` output.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from stats_agent.log import get_logger
from stats_agent.runner import Command, CommandRunner

logger = get_logger(__name__)

CPU_UNAVAILABLE = 'N/A'

# "%Cpu(s):  2.0 us,  1.0 sy,  0.0 ni, 96.5 id,  0.5 wa, ..."
IDLE_PATTERN = re.compile(r'([0-9]+(?:[.,][0-9]+)?)\s*%?\s*id\b')

MEMORY_FIELDS = ('total', 'used', 'free', 'shared', 'buff/cache', 'available')


@dataclass(frozen=True)
class MemoryInfo:
    """Memory usage in megabytes, as reported by ``free -m``"""
    total: Optional[str] = None
    used: Optional[str] = None
    free: Optional[str] = None
    shared: Optional[str] = None
    buff_cache: Optional[str] = None
    available: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.total is None

    def to_dict(self) -> Dict[str, str]:
        if self.is_empty:
            return {}
        values = (self.total, self.used, self.free, self.shared, self.buff_cache, self.available)
        return dict(zip(MEMORY_FIELDS, values))


EMPTY_MEMORY = MemoryInfo()


def parse_cpu_usage(report: str) -> Optional[str]:
    """
    Extract CPU usage from a ``top -bn1`` report.

    Returns ``100 - idle`` formatted like awk's default number output
    (``"10%"``, ``"12.3%"``), or None if there is no usable Cpu(s) line.
    """
    for line in report.splitlines():
        if 'Cpu(s)' not in line:
            continue
        match = IDLE_PATTERN.search(line)
        if not match:
            return None
        idle = float(match.group(1).replace(',', '.'))
        if not 0 <= idle <= 100:
            return None
        return f"{100 - idle:.6g}%"
    return None


def parse_memory_fields(report: str) -> Optional[List[str]]:
    """
    Extract the six ``Mem:`` columns from a ``free -m`` report.

    Accepts either the full report or a bare line of six numbers.
    Returns None unless exactly six integer fields are present.
    """
    fields = None
    for line in report.splitlines():
        parts = line.split()
        if parts and parts[0] == 'Mem:':
            fields = parts[1:]
            break

    if fields is None:
        fields = report.split()

    if len(fields) != len(MEMORY_FIELDS):
        return None

    if not all(field.isdigit() for field in fields):
        return None
    return fields


class CpuCollector:
    """Collects a single-sample CPU utilization percentage"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def collect(self) -> str:
        # One instantaneous sample; no interval averaging
        result = self.runner.run(Command.CPU_REPORT)
        if not result.ok:
            return CPU_UNAVAILABLE

        usage = parse_cpu_usage(result.stdout)
        if usage is None:
            logger.warning("Could not parse CPU usage from top output")
            return CPU_UNAVAILABLE
        return usage


class MemoryCollector:
    """Collects memory usage in megabytes"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def collect(self) -> MemoryInfo:
        result = self.runner.run(Command.MEMORY_REPORT)
        if not result.ok:
            return EMPTY_MEMORY

        fields = parse_memory_fields(result.stdout)
        if fields is None:
            logger.warning(
                "Could not parse memory usage from free output",
                extra={'context': {'output': result.stdout.strip()[:200]}}
            )
            return EMPTY_MEMORY

        total, used, free, shared, buff_cache, available = (f"{value}MB" for value in fields)
        return MemoryInfo(
            total=total,
            used=used,
            free=free,
            shared=shared,
            buff_cache=buff_cache,
            available=available
        )
