"""
Allow running the agent as a module: python -m stats_agent
"""
from stats_agent.cli import main


if __name__ == '__main__':
    main()
