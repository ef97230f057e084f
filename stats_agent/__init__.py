"""
stats_agent: Database host health agent

Serves an authenticated /stats endpoint reporting CPU, memory and the
run state of the MySQL, PostgreSQL and MongoDB services on this host.
"""

__version__ = '1.0.0'

from stats_agent.aggregator import StatsAggregator, StatsSnapshot
from stats_agent.collectors import CpuCollector, MemoryCollector, MemoryInfo
from stats_agent.probes import ServiceProbe, ServiceState

__all__ = [
    'StatsAggregator', 'StatsSnapshot', 'CpuCollector', 'MemoryCollector',
    'MemoryInfo', 'ServiceProbe', 'ServiceState',
]
