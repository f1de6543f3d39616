"""
Centralized constants for scheduler, batches and audit (Encapsulate What Changes).

Change job IDs, caps or action names here instead of scattering literals across main and routes.
Interval and deadline window come from settings (env-driven).
"""
from artist_dispatch.config import settings

# Scheduler job IDs (must match ids used in main.py add_job)
DEADLINE_SWEEP_JOB_ID = "deadline_sweep"
DEADLINE_SWEEP_INTERVAL_SECONDS = max(30, settings.deadline_sweep_interval_seconds)

# Every batch gets the same window regardless of mode
PROPOSAL_DEADLINE_HOURS = max(1, settings.proposal_deadline_hours)

# Actor recorded on audit rows written by jobs and webhooks
SYSTEM_ACTOR = "system"

# Audit action names (audit_logs.action)
AUDIT_BATCH_CREATED = "BATCH_CREATED"
AUDIT_PROPOSAL_RESPONSE = "PROPOSAL_RESPONSE"
AUDIT_BATCH_COMPLETED = "BATCH_COMPLETED"
AUDIT_SINGLE_TIMEOUT_TO_BROADCAST = "SINGLE_BATCH_TIMEOUT_TO_BROADCAST"
AUDIT_EXPIRED_SENT_OPTIONS = "EXPIRED_SENT_OPTIONS"
AUDIT_EXPIRED_NO_AVAILABILITY = "EXPIRED_NO_AVAILABILITY"
AUDIT_CLIENT_SERVICE_UPSERT = "CLIENT_SERVICE_UPSERT"
AUDIT_CLIENT_SERVICE_DELETED = "CLIENT_SERVICE_DELETED"
AUDIT_MARKED_UNDECIDED = "MARKED_UNDECIDED"
AUDIT_ARTIST_CREATED = "ARTIST_CREATED"
AUDIT_ARTIST_DEACTIVATED = "ARTIST_DEACTIVATED"
AUDIT_ARTIST_CATEGORY_CORRECTED = "ARTIST_CATEGORY_CORRECTED"
AUDIT_ARTIST_LOG_TRIAL = "ARTIST_LOG_TRIAL"
AUDIT_CONFIRM_BOOKING = "CONFIRM_BOOKING"

# Audit entity types (audit_logs.entity_type)
ENTITY_BATCH = "proposal_batch"
ENTITY_PROPOSAL = "proposal"
ENTITY_CLIENT_SERVICE = "client_service"
ENTITY_ARTIST = "artist"
ENTITY_CLIENT_ITEM = "client_item"  # board item with no local record yet

# Board API: page size for items_page enumeration, cap on pages per sync
BOARD_PAGE_SIZE = 100
BOARD_MAX_PAGES = 50

# Note lookups right after an item is created: the note may land a moment later
NOTE_LOOKUP_RETRIES = 3
NOTE_LOOKUP_DELAY_SECONDS = 2.0

# Listing caps so responses stay bounded
RECENT_BATCHES_LIMIT = 50
TIMELINE_LIMIT = 200

# Display time zone for backoffice timelines
DISPLAY_TIMEZONE = "Europe/Lisbon"
