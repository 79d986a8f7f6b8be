# Periodic alert maintenance: retention cleanup and optional generation sweep.

from pantry_alerts.scheduler.runner import (
    PeriodicRunnerConfig,
    TickSummary,
    run_periodic_runner,
    run_tick_once,
)

__all__ = [
    "PeriodicRunnerConfig",
    "TickSummary",
    "run_periodic_runner",
    "run_tick_once",
]
