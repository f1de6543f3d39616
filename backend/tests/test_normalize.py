"""Tests for board text normalization and status matching."""

from artist_dispatch.core.board_config import TRIGGER_SECOND_OPTION, TRIGGER_TRAVELLING, TRIGGER_UNDECIDED
from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.core.normalize import normalize_status, normalize_text


class TestNormalizeText:
    def test_none_and_empty(self):
        assert normalize_text(None) == ""
        assert normalize_text("   ") == ""

    def test_lowercases_strips_accents_and_collapses_spaces(self):
        assert normalize_text("  Conceição   DA  Silva ") == "conceicao da silva"

    def test_unifies_dashes_and_quotes(self):
        assert normalize_text("a — b – c") == "a - b - c"
        assert normalize_text("“quoted”") == '"quoted"'


class TestNormalizeStatus:
    def test_single_space_around_dash(self):
        assert normalize_status("Undecided–Inquire") == "undecided - inquire"
        assert normalize_status("Undecided  -   Inquire") == "undecided - inquire"

    def test_en_dash_and_hyphen_compare_equal(self):
        assert normalize_status("Undecided – Inquire availabilities") == normalize_status(
            "undecided - inquire availabilities"
        )


class TestMatchTrigger:
    def test_undecided_any_dash(self, board_config):
        assert board_config.match_trigger(ServiceCategory.MUA, "UNDECIDED-Inquire Availabilities") == TRIGGER_UNDECIDED

    def test_travelling_both_categories(self, board_config):
        for category in ServiceCategory:
            assert board_config.match_trigger(category, "Travelling fee + inquire the artist") == TRIGGER_TRAVELLING

    def test_second_option_phrase_differs_per_category(self, board_config):
        assert board_config.match_trigger(ServiceCategory.MUA, "Inquire second option") == TRIGGER_SECOND_OPTION
        assert board_config.match_trigger(ServiceCategory.HS, "Inquire second option") is None
        assert (
            board_config.match_trigger(ServiceCategory.HS, "Travelling fee + inquire second option")
            == TRIGGER_SECOND_OPTION
        )

    def test_unknown_status(self, board_config):
        assert board_config.match_trigger(ServiceCategory.MUA, "Booked") is None
        assert board_config.match_trigger(ServiceCategory.MUA, "") is None


class TestNamedArtist:
    def test_finds_name_after_whatsapp_phrase(self, board_config):
        note = "Copy paste para WhatsApp de Ana Silva: Olá!"
        assert board_config.find_named_artist_email(note, ServiceCategory.MUA) == "ana@example.com"

    def test_falls_back_to_other_category(self, board_config):
        note = "copy paste para whatsapp de Rita Lopes"
        assert board_config.find_named_artist_email(note, ServiceCategory.MUA) == "rita@example.com"

    def test_no_phrase_no_match(self, board_config):
        assert board_config.find_named_artist_email("Ana Silva confirmed", ServiceCategory.MUA) is None
