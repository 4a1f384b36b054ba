"""
Utility modules for the DX Cluster app.
"""

from .logging_config import setup_logging
from .background_tasks import TaskManager, setup_background_tasks

__all__ = [
    'setup_logging',
    'TaskManager',
    'setup_background_tasks'
]
