"""Tests for text normalization helpers."""

from datetime import date

from papercrawler.utils.text import (
    apply_pattern,
    clean_abstract,
    clean_markup,
    extract_doi,
    normalize_doi,
    parse_date_text,
    short_hash,
    split_list,
)


class TestCleanMarkup:
    def test_subscript_digits_become_unicode(self):
        assert clean_markup("H<sub>2</sub>O") == "H₂O"

    def test_superscript_charge(self):
        assert clean_markup("Ca<sup>2+</sup> signalling") == "Ca²⁺ signalling"

    def test_non_digit_scripts_use_markers(self):
        assert clean_markup("x<sup>a+b</sup>") == "x^(a+b)"
        assert clean_markup("k<sub>cat</sub>") == "k_(cat)"

    def test_italic_and_bold_unwrapped(self):
        assert clean_markup("<i>E. coli</i> <b>growth</b>") == "E. coli growth"

    def test_greek_entities_decoded(self):
        assert clean_markup("&alpha;-helix and &beta;-sheet") == "α-helix and β-sheet"

    def test_block_tags_keep_words_apart(self):
        assert clean_markup("<p>First.</p><p>Second.</p>") == "First. Second."

    def test_plain_text_whitespace_collapsed(self):
        assert clean_markup("  a \n  b  ") == "a b"

    def test_empty(self):
        assert clean_markup(None) == ""
        assert clean_markup("") == ""


class TestCleanAbstract:
    def test_strips_abstract_label(self):
        assert clean_abstract("Abstract: Cells divide.") == "Cells divide."

    def test_keeps_words_starting_with_abstract(self):
        assert clean_abstract("Abstraction layers help.") == "Abstraction layers help."

    def test_nature_boilerplate_removed(self):
        text = (
            "Scientists engineer a synthetic genome for yeast cells with new codons."
            "Nature, Published online: 05 January 2024; doi:10.1038/s41586-024-00001-1"
        )
        assert clean_abstract(text, "Nature") == (
            "Scientists engineer a synthetic genome for yeast cells with new codons."
        )

    def test_trailing_doi_removed(self):
        text = "A study of protein folding in crowded environments. doi:10.1101/2024.01.01"
        assert clean_abstract(text) == "A study of protein folding in crowded environments."

    def test_metadata_only_snippet_dropped(self):
        assert clean_abstract("Published online 12 March 2024") == ""
        assert clean_abstract("https://example.org/x") == ""

    def test_real_short_abstract_kept(self):
        assert clean_abstract("Short but real.") == "Short but real."


class TestIdentifiers:
    def test_normalize_doi_strips_resolver(self):
        assert normalize_doi("https://doi.org/10.1038/ABC") == "10.1038/abc"

    def test_extract_doi_from_entry_fields(self):
        entry = {"id": "tag:x", "link": "https://doi.org/10.1371/journal.pcbi.1011234"}
        assert extract_doi(entry) == "10.1371/journal.pcbi.1011234"

    def test_extract_doi_missing(self):
        assert extract_doi({"title": "No identifier here"}) is None

    def test_short_hash_is_stable(self):
        assert short_hash("guid-1") == short_hash("guid-1")
        assert len(short_hash("guid-1")) == 12
        assert short_hash("guid-1") != short_hash("guid-2")


class TestPatterns:
    def test_apply_pattern_uses_first_group(self):
        assert apply_pattern("PMID: 38012345", r"PMID:\s*(\d+)") == "38012345"

    def test_apply_pattern_keeps_raw_text_on_mismatch(self):
        assert apply_pattern(" 38012345 ", r"PMID:\s*(\d+)") == "38012345"

    def test_apply_pattern_without_pattern(self):
        assert apply_pattern("abc", None) == "abc"

    def test_invalid_pattern_keeps_raw_text(self):
        assert apply_pattern("abc", "(") == "abc"

    def test_split_list(self):
        assert split_list(" Smith J, , Doe A ") == ["Smith J", "Doe A"]
        assert split_list("") == []


class TestParseDateText:
    def test_year_only_pattern(self):
        citation = "Nature. 2024 Jan 5;625(7993):100-105."
        assert parse_date_text(citation, r"(\d{4})\s+[A-Za-z]+") == date(2024, 1, 1)

    def test_full_date(self):
        assert parse_date_text("2023-03-05") == date(2023, 3, 5)

    def test_biorxiv_doi_date(self):
        text = "doi: https://doi.org/10.1101/2024.01.05.574321"
        assert parse_date_text(text, r"10\.1101/(\d{4}\.\d{2}\.\d{2})") == date(2024, 1, 5)

    def test_no_year(self):
        assert parse_date_text("no date here") is None
        assert parse_date_text("") is None

    def test_pattern_mismatch(self):
        assert parse_date_text("2024", r"(\d{4})-(\d{2})") is None
