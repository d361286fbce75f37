"""
Task tracker backend package.

A FastAPI service where authenticated users manage their own tasks. The
application factory lives in ``task_tracker.main`` (``create_app``); the
process entry point is ``python -m task_tracker``.
"""

__version__ = "0.1.0"
