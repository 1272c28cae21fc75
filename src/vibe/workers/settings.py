"""arq worker settings module.

Import path for arq CLI: arq vibe.workers.settings.WorkerSettings
"""

from __future__ import annotations

from vibe.workers.engine_worker import EngineWorkerSettings as WorkerSettings

__all__ = ["WorkerSettings"]
