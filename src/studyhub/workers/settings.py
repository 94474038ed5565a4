"""arq worker settings module.

Import path for arq CLI: arq studyhub.workers.settings.WorkerSettings
"""

from __future__ import annotations

from studyhub.challenges.worker import ChallengeWorkerSettings as WorkerSettings

__all__ = ["WorkerSettings"]
