"""Issue state synchronization and dependency resolution"""

__version__ = "0.1.0"
