"""
Board lookup tables: which column holds what per service category, which status
phrases start a batch, and which artist a free-text name in an item note refers to.

Defaults come from settings; BOARD_LOOKUP_PATH can point at a JSON file that overrides
any of them, e.g.:

    {
      "status_phrases": {"undecided": "undecided - inquire availabilities"},
      "artist_names": {"MUA": {"Ana Silva": "ana@example.com"}, "HS": {}}
    }

Services receive a BoardConfig instance instead of reading globals, so tests build their own.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from artist_dispatch.config import settings
from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.core.normalize import normalize_status, normalize_text

logger = logging.getLogger(__name__)

# Status triggers (compared after normalize_status)
TRIGGER_UNDECIDED = "undecided"
TRIGGER_TRAVELLING = "travelling"
TRIGGER_SECOND_OPTION = "second_option"

DEFAULT_STATUS_PHRASES: dict[str, dict[str, str]] = {
    TRIGGER_UNDECIDED: {
        "MUA": "undecided – inquire availabilities",
        "HS": "undecided – inquire availabilities",
    },
    TRIGGER_TRAVELLING: {
        "MUA": "Travelling fee + inquire the artist",
        "HS": "Travelling fee + inquire the artist",
    },
    TRIGGER_SECOND_OPTION: {
        "MUA": "inquire second option",
        "HS": "Travelling fee + inquire second option",
    },
}

# Item note written by the team when they send the artist's message to the client
DEFAULT_WHATSAPP_NOTE_PHRASE = "copy paste para whatsapp de "

# Statuses of the artist-facing lists, per category
DEFAULT_BOOKED_STATUSES: dict[str, list[str]] = {
    "MUA": ["MUA booked!", "MUA booked !"],
    "HS": ["H booked!", "H booked !"],
}
DEFAULT_AWAITING_PAYMENT_STATUSES: dict[str, list[str]] = {
    "MUA": ["wait for c to pay", "reunião check"],
    "HS": ["wait for c to pay"],
}

# Notes the team writes on a client item once an artist is reserved / accepted by the client,
# and the note posted when an artist logs a trial. {name} is the artist's board name.
DEFAULT_RESERVED_NOTE = "{name} reservada"
DEFAULT_ACCEPTED_NOTE = "aceitou as condições de {name}"
DEFAULT_TRIAL_NOTE = "{name} inseriu {date} para prova desta cliente."


@dataclass(frozen=True)
class CategoryColumns:
    """Board columns that belong to one service category."""
    status_column: str
    chosen_artist_column: str = ""
    automation_column: str = ""


@dataclass(frozen=True)
class BoardConfig:
    clients_board_id: str = ""
    columns: dict[ServiceCategory, CategoryColumns] = field(default_factory=dict)
    # Shared client columns
    client_name_column: str = "short_text8"
    email_column: str = "email4"
    phone_column: str = "phone"
    event_date_column: str = "date6"
    venue_column: str = "location"
    description_column: str = "long_text"
    # trigger -> category -> raw phrase
    status_phrases: dict[str, dict[str, str]] = field(default_factory=lambda: DEFAULT_STATUS_PHRASES)
    whatsapp_note_phrase: str = DEFAULT_WHATSAPP_NOTE_PHRASE
    # category -> {artist display name: artist email}
    artist_names: dict[ServiceCategory, dict[str, str]] = field(default_factory=dict)
    trial_date_column: str = "date_mkpj7c7s"
    booked_statuses: dict[str, list[str]] = field(default_factory=lambda: DEFAULT_BOOKED_STATUSES)
    awaiting_payment_statuses: dict[str, list[str]] = field(default_factory=lambda: DEFAULT_AWAITING_PAYMENT_STATUSES)
    reserved_note: str = DEFAULT_RESERVED_NOTE
    accepted_note: str = DEFAULT_ACCEPTED_NOTE
    trial_note: str = DEFAULT_TRIAL_NOTE

    def columns_for(self, category: ServiceCategory) -> CategoryColumns:
        cols = self.columns.get(category)
        if cols is None:
            raise KeyError(f"No board columns configured for category {category.value}")
        return cols

    def category_for_status_column(self, column_id: str | None) -> ServiceCategory | None:
        if not column_id:
            return None
        for category, cols in self.columns.items():
            if cols.status_column == column_id:
                return category
        return None

    def phrase(self, trigger: str, category: ServiceCategory) -> str:
        """Normalized status phrase for a trigger in a category ("" when not configured)."""
        return normalize_status((self.status_phrases.get(trigger) or {}).get(category.value, ""))

    def match_trigger(self, category: ServiceCategory, status_text: str | None) -> str | None:
        """Which trigger this status text fires for the category, or None."""
        status = normalize_status(status_text)
        if not status:
            return None
        for trigger in (TRIGGER_UNDECIDED, TRIGGER_TRAVELLING, TRIGGER_SECOND_OPTION):
            phrase = self.phrase(trigger, category)
            if phrase and status == phrase:
                return trigger
        return None

    def qualifying_statuses(self, category: ServiceCategory) -> set[str]:
        """All normalized phrases that mean 'this booking needs artists' for the category."""
        out = set()
        for trigger in self.status_phrases:
            phrase = self.phrase(trigger, category)
            if phrase:
                out.add(phrase)
        return out

    def booked_phrases(self, category: ServiceCategory) -> set[str]:
        return {normalize_status(s) for s in self.booked_statuses.get(category.value) or [] if s}

    def awaiting_payment_phrases(self, category: ServiceCategory) -> set[str]:
        return {normalize_status(s) for s in self.awaiting_payment_statuses.get(category.value) or [] if s}

    def names_for(self, category: ServiceCategory) -> dict[str, str]:
        return self.artist_names.get(category) or {}

    def board_name_for(self, email: str | None, category: ServiceCategory) -> str | None:
        """Name the team uses for this artist in item notes, from the name tables (category first)."""
        email = (email or "").strip().lower()
        if not email:
            return None
        others = [c for c in ServiceCategory if c != category]
        for cat in [category, *others]:
            for name, named_email in self.names_for(cat).items():
                if named_email == email:
                    return name
        return None

    def find_named_artist_email(self, note_text: str | None, category: ServiceCategory) -> str | None:
        """
        Email of the artist named after the whatsapp phrase in a note, searching the category's
        table first and then the other category's. None if the note has no phrase or no known name.
        """
        text = normalize_text(note_text)
        phrase = normalize_text(self.whatsapp_note_phrase)
        if not text or not phrase or phrase not in text:
            return None
        tail = text[text.index(phrase) + len(phrase):].strip()
        others = [c for c in ServiceCategory if c != category]
        for cat in [category, *others]:
            for name, email in self.names_for(cat).items():
                key = normalize_text(name)
                if key and (tail.startswith(key) or f" {key}" in tail):
                    return email
        return None


def _from_settings() -> dict[ServiceCategory, CategoryColumns]:
    automation = settings.monday_email_automation_column_id
    return {
        ServiceCategory.MUA: CategoryColumns(
            status_column=settings.monday_mstatus_column_id or "project_status",
            chosen_artist_column=settings.monday_chosen_mua_column_id,
            automation_column=automation,
        ),
        ServiceCategory.HS: CategoryColumns(
            status_column=settings.monday_hstatus_column_id or "dup__of_mstatus",
            chosen_artist_column=settings.monday_chosen_hs_column_id,
            automation_column=automation,
        ),
    }


def _parse_artist_names(raw: dict) -> dict[ServiceCategory, dict[str, str]]:
    out: dict[ServiceCategory, dict[str, str]] = {}
    for key, names in (raw or {}).items():
        try:
            category = ServiceCategory(str(key).upper())
        except ValueError:
            logger.warning("Board lookup: unknown category %r in artist_names; skipping", key)
            continue
        out[category] = {str(n): str(e).strip().lower() for n, e in (names or {}).items() if n and e}
    return out


def _status_lists(raw, defaults: dict[str, list[str]]) -> dict[str, list[str]]:
    out = {k: list(v) for k, v in defaults.items()}
    for key, value in (raw or {}).items():
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            out[str(key).upper()] = [str(v) for v in value if v]
    return out


def load_board_config(path: str | None = None) -> BoardConfig:
    """Build BoardConfig from settings plus the optional JSON lookup file."""
    path = path if path is not None else settings.board_lookup_path
    data: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            try:
                data = json.loads(p.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning("Board lookup file %s unreadable (%s); using defaults", p, e)
        else:
            logger.warning("BOARD_LOOKUP_PATH %s does not exist; using defaults", p)
    phrases = {k: dict(v) for k, v in DEFAULT_STATUS_PHRASES.items()}
    for trigger, value in (data.get("status_phrases") or {}).items():
        if isinstance(value, str):
            phrases[trigger] = {c.value: value for c in ServiceCategory}
        elif isinstance(value, dict):
            phrases.setdefault(trigger, {}).update({str(k).upper(): str(v) for k, v in value.items()})
    return BoardConfig(
        clients_board_id=settings.monday_clients_board_id,
        columns=_from_settings(),
        status_phrases=phrases,
        whatsapp_note_phrase=data.get("whatsapp_note_phrase") or DEFAULT_WHATSAPP_NOTE_PHRASE,
        artist_names=_parse_artist_names(data.get("artist_names") or {}),
        trial_date_column=settings.monday_trial_date_column_id or "date_mkpj7c7s",
        booked_statuses=_status_lists(data.get("booked_statuses"), DEFAULT_BOOKED_STATUSES),
        awaiting_payment_statuses=_status_lists(
            data.get("awaiting_payment_statuses"), DEFAULT_AWAITING_PAYMENT_STATUSES
        ),
        reserved_note=data.get("reserved_note") or DEFAULT_RESERVED_NOTE,
        accepted_note=data.get("accepted_note") or DEFAULT_ACCEPTED_NOTE,
        trial_note=data.get("trial_note") or DEFAULT_TRIAL_NOTE,
    )


_board_config: BoardConfig | None = None


def get_board_config() -> BoardConfig:
    """Process-wide BoardConfig (loaded once). FastAPI dependency and job entry point."""
    global _board_config
    if _board_config is None:
        _board_config = load_board_config()
    return _board_config
