"""
Background tasks for the DX Cluster app.
Runs the periodic spot poll and cache housekeeping.
"""

import time
import threading
import logging
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class TaskManager:
    """Manages background tasks with scheduling and monitoring."""

    def __init__(self, tick: float = 1.0):
        self.tasks: Dict[str, dict] = {}
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.lock = threading.Lock()
        self.tick = tick
        self._stop = threading.Event()

    def add_task(self, name: str, task_func: Callable, interval_seconds: int = 300,
                 run_immediately: bool = False):
        """Add a new background task."""
        with self.lock:
            self.tasks[name] = {
                'func': task_func,
                'interval': interval_seconds,
                'last_run': None,
                'next_run': time.time() + (0 if run_immediately else interval_seconds),
                'in_progress': False,
                'runs': 0,
                'errors': 0,
                'last_error': None
            }
            logger.info(f"Added task: {name} (interval: {interval_seconds}s)")

    def remove_task(self, name: str):
        with self.lock:
            if self.tasks.pop(name, None) is not None:
                logger.info(f"Removed task: {name}")

    def start_all(self):
        """Start the scheduler thread."""
        with self.lock:
            if self.running:
                logger.warning("Task manager already running")
                return

            self.running = True
            self._stop.clear()
            self.thread = threading.Thread(target=self._run_scheduler, name='task-scheduler', daemon=True)
            self.thread.start()
            logger.info("Task manager started")

    def stop_all(self):
        """Stop the scheduler; tasks already running finish on their own threads."""
        with self.lock:
            self.running = False
            self._stop.set()
            thread = self.thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=5)
        logger.info("Task manager stopped")

    def _due_tasks(self, now: float):
        due = []
        with self.lock:
            for name, task_info in self.tasks.items():
                if not task_info['in_progress'] and now >= task_info['next_run']:
                    task_info['in_progress'] = True
                    due.append((name, task_info))
        return due

    def _run_scheduler(self):
        """Main scheduler loop."""
        while not self._stop.is_set():
            try:
                for name, task_info in self._due_tasks(time.time()):
                    # Run task in its own thread so a slow poll does not block the loop
                    threading.Thread(
                        target=self._run_task,
                        args=(name, task_info),
                        name=f'task-{name}',
                        daemon=True
                    ).start()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}")
            self._stop.wait(self.tick)

    def run_now(self, name: str) -> bool:
        """Run a task synchronously on the calling thread."""
        with self.lock:
            task_info = self.tasks.get(name)
            if task_info is None or task_info['in_progress']:
                return False
            task_info['in_progress'] = True
        return self._run_task(name, task_info)

    def _run_task(self, name: str, task_info: dict) -> bool:
        """Run a single task with error handling."""
        start_time = time.time()
        try:
            task_info['func']()
        except Exception as e:
            logger.error(f"Error running task {name}: {e}")
            with self.lock:
                task_info['errors'] += 1
                task_info['last_error'] = str(e)
                task_info['next_run'] = time.time() + task_info['interval']
                task_info['in_progress'] = False
            return False

        with self.lock:
            task_info['last_run'] = time.time()
            task_info['next_run'] = task_info['last_run'] + task_info['interval']
            task_info['runs'] += 1
            task_info['last_error'] = None
            task_info['in_progress'] = False

        logger.debug(f"Task {name} completed in {time.time() - start_time:.2f}s")
        return True

    def get_status(self) -> dict:
        """Get status of all tasks."""
        with self.lock:
            return {
                'running': self.running,
                'tasks': {
                    name: {
                        'interval': info['interval'],
                        'last_run': info['last_run'],
                        'next_run': info['next_run'],
                        'in_progress': info['in_progress'],
                        'runs': info['runs'],
                        'errors': info['errors'],
                        'last_error': info['last_error']
                    }
                    for name, info in self.tasks.items()
                }
            }


def setup_background_tasks(poll_spots: Callable, poll_interval: int,
                           cache_cleanup: Optional[Callable] = None) -> TaskManager:
    """
    Set up background tasks for the application.

    Args:
        poll_spots: Function running one spot poll
        poll_interval: Seconds between polls
        cache_cleanup: Optional function purging expired cache entries

    Returns:
        TaskManager instance (not yet started)
    """
    task_manager = TaskManager()

    # First poll right away so the loading state clears quickly
    task_manager.add_task('poll_spots', poll_spots, poll_interval, run_immediately=True)

    if cache_cleanup is not None:
        task_manager.add_task('cache_cleanup', cache_cleanup, 900)

    return task_manager
