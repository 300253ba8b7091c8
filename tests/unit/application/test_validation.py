"""
Tests for link and position validation.
"""
from jobs_monitor.application.validation import (
    LINK_REQUIRED,
    LINK_WRONG_PREFIX,
    POSITION_REQUIRED,
    filter_links,
    filter_positions,
    is_valid_link,
    validate_form,
)


class TestFiltering:
    """Tests for server-side filtering."""

    def test_link_needs_prefix(self):
        """Only hiring-site links are accepted."""
        assert is_valid_link("https://hiring.amazon.com/app#/jobSearch")
        assert is_valid_link("  https://hiring.amazon/x  ")
        assert not is_valid_link("https://careers.other.com/x")
        assert not is_valid_link("   ")

    def test_filter_links_trims_and_keeps_order(self):
        """Filtered links are trimmed, in input order."""
        links = [" https://hiring.amazon/b", "", "https://careers.other.com/x", "https://hiring.amazon/a"]
        assert filter_links(links) == ["https://hiring.amazon/b", "https://hiring.amazon/a"]

    def test_filter_links_custom_prefix(self):
        """The accepted prefix is configurable."""
        assert filter_links(["https://example.test/x"], prefix="https://example.test") == [
            "https://example.test/x"
        ]

    def test_filter_positions_drops_blank(self):
        """Blank positions are dropped, the rest trimmed."""
        assert filter_positions([" Engineer ", "", "  ", "Associate"]) == ["Engineer", "Associate"]


class TestValidateForm:
    """Tests for the client-side form contract."""

    def test_valid_single_fields(self):
        """A prefixed link and a position pass."""
        result = validate_form(["https://hiring.amazon/x"], ["Engineer"])
        assert result.is_valid
        assert result.link_errors == ("",)
        assert result.position_errors == ("",)

    def test_single_blank_fields_are_required(self):
        """A single blank field is flagged as required."""
        result = validate_form([""], [""])
        assert not result.is_valid
        assert result.link_errors == (LINK_REQUIRED,)
        assert result.position_errors == (POSITION_REQUIRED,)

    def test_wrong_prefix_flagged(self):
        """A link on another site fails validation."""
        result = validate_form(["https://careers.other.com/x"], ["Engineer"])
        assert not result.is_valid
        assert result.link_errors == (LINK_WRONG_PREFIX,)

    def test_blank_ignored_among_several(self):
        """Blank fields are ignored when more than one field is present."""
        result = validate_form(["https://hiring.amazon/x", "  "], ["Engineer", ""])
        assert result.is_valid
        assert result.link_errors == ("", "")
