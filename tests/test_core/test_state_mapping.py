"""Tests for state name to code mapping utilities."""

from gymfinder.core.state_mapping import (
    STATE_NAME_TO_CODE,
    VALID_STATE_CODES,
    normalize_state_to_code,
    state_name,
    text_mentions_state,
)


class TestNormalizeStateToCode:
    """Test normalize_state_to_code function."""

    def test_empty_input(self):
        """Test with empty or None input."""
        assert normalize_state_to_code(None) == ""
        assert normalize_state_to_code("") == ""
        assert normalize_state_to_code("   ") == ""

    def test_valid_state_codes(self):
        """Test with already valid 2-letter state codes."""
        assert normalize_state_to_code("FL") == "FL"
        assert normalize_state_to_code("tx") == "TX"
        assert normalize_state_to_code(" Fl ") == "FL"
        assert normalize_state_to_code("F.L.") == "FL"

    def test_full_state_names(self):
        """Test with full state names."""
        assert normalize_state_to_code("Florida") == "FL"
        assert normalize_state_to_code("TEXAS") == "TX"
        assert normalize_state_to_code("new  york") == "NY"
        assert normalize_state_to_code("West Virginia") == "WV"

    def test_unknown(self):
        assert normalize_state_to_code("Atlantis") == ""
        assert normalize_state_to_code("XX") == ""

    def test_mapping_consistency(self):
        assert len(VALID_STATE_CODES) == len(STATE_NAME_TO_CODE)
        assert all(len(code) == 2 for code in VALID_STATE_CODES)


def test_state_name():
    assert state_name("FL") == "Florida"
    assert state_name("tx") == "Texas"
    assert state_name("ZZ") == ""


class TestTextMentionsState:
    """Test text_mentions_state function."""

    def test_full_name_segment(self):
        text = "123, Main Street, Tampa, Hillsborough County, Florida, 33602, United States"
        assert text_mentions_state(text, "FL")

    def test_code_with_zip(self):
        assert text_mentions_state("123 Main St, Tampa, FL 33602, USA", "FL")

    def test_other_state(self):
        assert not text_mentions_state("Main Street, Austin, Texas, United States", "FL")

    def test_west_virginia_is_not_virginia(self):
        assert not text_mentions_state("Charleston, West Virginia, United States", "VA")
        assert text_mentions_state("Charleston, West Virginia, United States", "WV")

    def test_empty_text(self):
        assert not text_mentions_state(None, "FL")
        assert not text_mentions_state("", "FL")
