"""Unit tests for the field-extraction heuristics."""

import pytest

from funding_radar.extraction import (
    extract_amount,
    extract_deadline,
    extract_degree_level,
    extract_funding_info,
    extract_funding_type,
    extract_institution,
    extract_subject,
    institution_from_url,
    is_funding_related,
)
from funding_radar.models import DegreeLevel, FundingType


class TestAmount:
    def test_first_currency_fragment_wins(self) -> None:
        assert extract_amount("Stipend of $37,000 plus $16,000 for tuition") == "$37,000"

    def test_full_funding_phrase(self) -> None:
        assert extract_amount("This position offers full funding for 4 years").lower() == "full funding"

    def test_no_amount_gives_sentinel(self) -> None:
        assert extract_amount("Generous support available") == "Amount varies"


class TestDeadline:
    def test_labelled_deadline_strips_label(self) -> None:
        assert extract_deadline("Application deadline: October 15, 2026.") == "October 15, 2026"

    def test_numeric_date(self) -> None:
        assert extract_deadline("Apply by 11/30/2026 via the portal") == "11/30/2026"

    def test_labelled_beats_earlier_bare_date(self) -> None:
        text = "Posted January 2, 2026. Deadline is March 1, 2026."
        assert extract_deadline(text) == "March 1, 2026"

    def test_no_date_gives_sentinel(self) -> None:
        assert extract_deadline("Rolling admissions") == "Not specified"


class TestDegreeLevel:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Fully funded PhD position in robotics", DegreeLevel.PHD),
            ("Doctoral dissertation fellowship", DegreeLevel.PHD),
            ("MSc scholarship for international students", DegreeLevel.MASTERS),
            ("Undergraduate research award", DegreeLevel.UNDERGRADUATE),
            ("Research funding available", DegreeLevel.PHD),
        ],
    )
    def test_tiers(self, text: str, expected: DegreeLevel) -> None:
        assert extract_degree_level(text) is expected

    def test_phd_tier_beats_masters_tier(self) -> None:
        assert extract_degree_level("Masters and PhD students may apply") is DegreeLevel.PHD


class TestSubject:
    def test_first_matching_subject_in_fixed_order(self) -> None:
        # both Computer Science and Biology keywords; Computer Science is earlier
        assert extract_subject("Machine learning for molecular biology") == "Computer Science"

    def test_default_all_fields(self) -> None:
        assert extract_subject("Open to every discipline") == "All Fields"


class TestFundingType:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Graduate Research Fellowship", FundingType.FELLOWSHIP),
            ("Merit scholarship", FundingType.SCHOLARSHIP),
            ("NIH training grant", FundingType.TRAINING_GRANT),
            ("Research grant for early-career scientists", FundingType.RESEARCH_GRANT),
            ("Best paper award", FundingType.AWARD),
            ("Support available", FundingType.FELLOWSHIP),
        ],
    )
    def test_precedence(self, text: str, expected: FundingType) -> None:
        assert extract_funding_type(text) is expected

    def test_fellow_alone_is_not_fellowship(self) -> None:
        assert extract_funding_type("Meet fellow students on a merit scholarship") is FundingType.SCHOLARSHIP

    def test_research_and_grant_apart_is_not_research_grant(self) -> None:
        text = "Research excellence award, grant writing support included"
        assert extract_funding_type(text) is FundingType.AWARD


class TestFundingInfo:
    def test_sentinels_on_plain_text(self) -> None:
        info = extract_funding_info("We welcome applications")
        assert info["amount"] == "Amount varies"
        assert info["deadline"] == "Not specified"
        assert info["degree_level"] is DegreeLevel.PHD
        assert info["subject"] == "All Fields"
        assert info["funding_type"] is FundingType.FELLOWSHIP


class TestRelevanceAndInstitution:
    def test_is_funding_related(self) -> None:
        assert is_funding_related("Graduate Scholarships 2026")
        assert not is_funding_related("Campus parking map")

    def test_extract_institution_from_post(self) -> None:
        text = "Open PhD position at Stanford University in computational biology"
        assert extract_institution(text) == "Stanford University"

    def test_extract_institution_missing(self) -> None:
        assert extract_institution("we are hiring, apply now") is None

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://www.nsf.gov/funding/grfp", "National Science Foundation"),
            ("https://vpge.stanford.edu/fellowships", "Stanford University"),
            ("https://www.grad.ox.ac.uk/funding", "Ox"),
            ("https://cs.cmu.edu/phd", "Cmu"),
            ("https://example.org/page", "Example"),
            ("not a url", "Unknown"),
        ],
    )
    def test_institution_from_url(self, url: str, expected: str) -> None:
        assert institution_from_url(url) == expected
