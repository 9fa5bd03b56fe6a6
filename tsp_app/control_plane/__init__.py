"""
tsp_app/control_plane - everything between a caller and the ACO core.

Public API:
    admit_run()      - validate points + config, raises InvalidInputError
    build_config()   - ColonyConfig from a mapping / overrides
    LoggingObserver  - per-iteration progress through `logging`
    QueueObserver    - fire-and-forget event queue for another thread
    ColonyRunner     - background-thread run with cooperative cancellation
"""

from tsp_app.control_plane.admission import admit_run, build_config
from tsp_app.control_plane.observers import LoggingObserver, QueueObserver
from tsp_app.control_plane.runner import ColonyRunner

__all__ = [
    "admit_run",
    "build_config",
    "LoggingObserver",
    "QueueObserver",
    "ColonyRunner",
]
