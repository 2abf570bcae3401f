"""
Analysis job lifecycle

This module provides the server-side job manager and the client-side poller.
"""

from .manager import JobLifecycleManager
from .poller import JobStatusPoller

__all__ = ['JobLifecycleManager', 'JobStatusPoller']
