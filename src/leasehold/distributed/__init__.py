"""Coordination helpers built on leases.

- Leader election for singleton workers
- Background keep-alive for long critical sections

Example:
    from leasehold.distributed import LeaderElection, LeaseKeeper

    election = LeaderElection(manager, "my-worker")
    await election.start()
"""

from leasehold.distributed.keepalive import LeaseKeeper
from leasehold.distributed.leader import LeaderElection, leader_only

__all__ = [
    "LeaderElection",
    "LeaseKeeper",
    "leader_only",
]
