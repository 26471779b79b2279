"""Unit tests for personal data redaction."""

import pytest

from app.models.lost_item import SECRET_FIELDS
from app.services.redaction import (
    PRIVACY_NOTICE,
    TRUNCATION_NOTICE,
    SensitivityLevel,
    redact,
    redact_item,
    redact_item_list,
)


class TestRedact:

    def test_local_phone_number(self):
        result = redact("Call me on 0788123456 please", "PHONE")

        assert result.redacted_text == "Call me on 0788***56 please"
        assert result.sensitivity_level == SensitivityLevel.HIGH
        assert result.redactions_applied[0].pattern_type == "PHONE_NUMBER"

    def test_international_phone_number(self):
        result = redact("Owner: +250 788 123 456", "PHONE")

        assert "788 123 456" not in result.redacted_text
        assert result.redacted_text == "Owner: 2507***56"

    def test_national_id(self):
        result = redact("ID number 1199880012345678 inside", "ID")

        assert result.redacted_text == "ID number 1" + "*" * 14 + "8 inside"
        assert result.redactions_applied[0].pattern_type == "NATIONAL_ID"
        assert result.redactions_applied[0].original_length == 16

    def test_email(self):
        result = redact("Contact aline.u@gmail.com", "OTHER")

        assert result.redacted_text == "Contact a***@gmail.com"

    def test_several_patterns(self):
        result = redact("Email jean@example.rw or 0722000111", "WALLET")

        assert {r.pattern_type for r in result.redactions_applied} == {"EMAIL", "PHONE_NUMBER"}

    def test_owner_sees_original(self):
        text = "My number is 0788123456"
        result = redact(text, "PHONE", is_owner=True)

        assert result.redacted_text == text
        assert result.redactions_applied == []
        assert result.sensitivity_level == SensitivityLevel.NONE

    def test_clean_text_untouched(self):
        result = redact("Blue backpack with a laptop", "BAG")

        assert result.redacted_text == "Blue backpack with a laptop"
        assert result.sensitivity_level == SensitivityLevel.NONE

    def test_empty_text(self):
        assert redact(None).redacted_text == ""

    @pytest.mark.parametrize("category", ["ID", "WALLET", "wallet"])
    def test_sensitive_categories_truncate(self, category):
        result = redact("x" * 250, category)

        assert result.truncated
        assert result.redacted_text == "x" * 200 + TRUNCATION_NOTICE
        # truncation alone is not a pattern hit
        assert result.sensitivity_level == SensitivityLevel.NONE

    def test_other_categories_do_not_truncate(self):
        result = redact("x" * 250, "BAG")

        assert not result.truncated
        assert len(result.redacted_text) == 250

    def test_short_sensitive_text_not_truncated(self):
        assert not redact("x" * 200, "ID").truncated


class TestRedactItem:

    def test_secrets_never_rendered(self, owner, stranger, make_lost):
        item = make_lost(owner)

        for viewer in (owner.id, stranger.id, None):
            data = redact_item(item, viewer)
            assert not SECRET_FIELDS & set(data)

    def test_non_owner_view_is_masked(self, owner, stranger, make_lost):
        item = make_lost(owner, description="Black phone, call 0788123456 if found")

        data = redact_item(item, stranger.id)

        assert "0788123456" not in data["description"]
        assert data["privacy_notice"] == PRIVACY_NOTICE
        assert data["redaction_count"] == 1

    def test_owner_view_is_plain(self, owner, make_lost):
        item = make_lost(owner, description="Black phone, call 0788123456 if found")

        data = redact_item(item, owner.id)

        assert data["description"] == "Black phone, call 0788123456 if found"
        assert "privacy_notice" not in data

    def test_anonymous_viewer_is_never_owner(self, owner, make_lost):
        item = make_lost(owner, description="Black phone, call 0788123456 if found")

        assert "0788123456" not in redact_item(item, None)["description"]

    def test_list(self, owner, finder, make_lost, make_found):
        items = [make_lost(owner), make_found(finder)]

        rendered = redact_item_list(items, owner.id)

        assert [r["id"] for r in rendered] == [i.id for i in items]
