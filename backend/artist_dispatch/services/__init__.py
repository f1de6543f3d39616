from artist_dispatch.services.deadline_sweeper import SweepResult, sweep_expired_batches
from artist_dispatch.services.proposal_engine import create_batch, respond
from artist_dispatch.services.proposal_ledger import get_artist_proposal_stats, list_open_proposals_for_artist

__all__ = [
    "create_batch",
    "respond",
    "sweep_expired_batches",
    "SweepResult",
    "list_open_proposals_for_artist",
    "get_artist_proposal_stats",
]
