"""State/store layer.

The stores in this package are the single owners of the client-side entity
collections. Consumers read their properties, call their async operations,
and subscribe for change notifications; they never mutate state directly.
"""

from jobsync.state.auth_store import AuthStore
from jobsync.state.job_store import JobStore, LoadPhase
from jobsync.state.scheduling import run_after_interactions

__all__ = ["AuthStore", "JobStore", "LoadPhase", "run_after_interactions"]
