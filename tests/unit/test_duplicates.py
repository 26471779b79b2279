"""Unit tests for report-time duplicate detection."""

from datetime import datetime, timedelta, timezone

from app.models.enums import ItemStatus
from app.services.duplicates import DUPLICATE_THRESHOLD, check_duplicate_reports, text_similarity

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestTextSimilarity:

    def test_word_order_does_not_matter(self):
        assert text_similarity("Black Samsung phone", "samsung phone, black") == 1.0

    def test_partial_overlap(self):
        assert text_similarity("black samsung phone", "blue tecno phone") == 1 / 5

    def test_empty_text(self):
        assert text_similarity("", "Black Samsung phone") == 0.0
        assert text_similarity(None, None) == 0.0


class TestCheckDuplicateLostReports:

    def test_identical_report_is_flagged(self, session, owner, make_lost):
        earlier = make_lost(owner)
        new = make_lost(owner)

        result = check_duplicate_reports(session, new, NOW)

        assert result.has_potential_duplicates
        assert [c.id for c in result.candidates] == [earlier.id]
        # category + location + date + title + description
        assert result.highest_score == 5 + 3 + 2 + 3 + 2
        assert result.candidates[0].similarity_reasons == [
            "Same category: PHONE",
            "Same location: Kimironko",
            "Lost within 3 days of each other",
            "Similar title (100% match)",
            "Similar description",
        ]

    def test_first_report_has_no_duplicates(self, session, owner, make_lost):
        result = check_duplicate_reports(session, make_lost(owner), NOW)

        assert not result.has_potential_duplicates
        assert result.candidates == []
        assert result.highest_score == 0

    def test_same_district_counts_less_than_same_area(self, session, owner, make_lost):
        make_lost(owner, location_area="Remera")
        new = make_lost(owner)

        candidate = check_duplicate_reports(session, new, NOW).candidates[0]

        assert candidate.similarity_score == 5 + 1 + 2 + 3 + 2
        assert "Same district: Gasabo" in candidate.similarity_reasons

    def test_week_old_report(self, session, owner, make_lost):
        make_lost(owner, lost_date=NOW - timedelta(days=5))
        new = make_lost(owner)

        candidate = check_duplicate_reports(session, new, NOW).candidates[0]

        assert candidate.similarity_score == 5 + 3 + 1 + 3 + 2
        assert "Lost within 7 days of each other" in candidate.similarity_reasons

    def test_different_item_is_below_threshold(self, session, owner, make_lost):
        make_lost(owner, title="Tecno Spark", description="Blue Tecno phone", location_area="Nyamirambo")
        new = make_lost(owner)

        assert not check_duplicate_reports(session, new, NOW).has_potential_duplicates
        assert 5 + 2 < DUPLICATE_THRESHOLD

    def test_only_the_reporters_open_reports_in_the_category(self, session, owner, stranger, make_lost):
        make_lost(stranger)
        make_lost(owner, category="WALLET")
        make_lost(owner, created_at=NOW - timedelta(days=40))
        closed = make_lost(owner)
        closed.status = ItemStatus.CLOSED.value
        session.add(closed)
        session.commit()

        new = make_lost(owner)

        assert not check_duplicate_reports(session, new, NOW).has_potential_duplicates


class TestCheckDuplicateFoundReports:

    def test_identical_found_report_is_flagged(self, session, finder, make_found):
        earlier = make_found(finder)
        new = make_found(finder)

        result = check_duplicate_reports(session, new, NOW)

        assert [c.id for c in result.candidates] == [earlier.id]
        assert "Found within 3 days of each other" in result.candidates[0].similarity_reasons

    def test_lost_reports_are_not_compared(self, session, finder, make_lost, make_found):
        make_lost(finder)

        assert not check_duplicate_reports(session, make_found(finder), NOW).has_potential_duplicates
