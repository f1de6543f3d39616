from artist_dispatch.models.artist import Artist
from artist_dispatch.models.audit_log import AuditLog
from artist_dispatch.models.client_service import ClientService
from artist_dispatch.models.proposal import Proposal
from artist_dispatch.models.proposal_batch import ProposalBatch
from artist_dispatch.models.push_token import PushToken

__all__ = [
    "Artist",
    "AuditLog",
    "ClientService",
    "Proposal",
    "ProposalBatch",
    "PushToken",
]
