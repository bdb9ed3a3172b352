"""Tests for the review working set."""

from datetime import date
from decimal import Decimal

import pytest

from transactwise.errors import ImmutableTransactionError, ReviewError, TransactionNotFoundError
from transactwise.models import MatchResult, RawTransaction, TransactionStatus
from transactwise.review import ReviewSession


@pytest.fixture
def review():
    session = ReviewSession("company-1")
    session.load([
        RawTransaction(
            index=i,
            date=date(2024, 3, 1),
            amount=Decimal("-20.00"),
            statement_text=f"ROW {i}",
            memo="note" if i == 0 else None,
        )
        for i in range(3)
    ])
    return session


class TestLoad:
    """Tests for starting a working set."""

    def test_rows_start_unmatched_with_temp_ids(self, review):
        """Test that every row starts unmatched with a temp id."""
        assert [r.id for r in review.rows] == ["temp-0", "temp-1", "temp-2"]
        assert all(r.status is TransactionStatus.UNMATCHED for r in review.rows)

    def test_load_replaces_previous_working_set(self, review):
        """Test that loading again discards the old rows."""
        review.load([RawTransaction(index=0, date=None, amount=Decimal("1"), description="X")])

        assert len(review) == 1


class TestApplyMatches:
    """Tests for applying match results."""

    def test_status_follows_entity_match(self, review, snapshot):
        """Test matched vs unmatched, with account-only rows staying unmatched."""
        review.apply_matches(
            [
                MatchResult(0, vendor_id="v-starbucks", chart_of_account_id="coa-meals"),
                MatchResult(1, chart_of_account_id="coa-office"),
                MatchResult(2, customer_id="c-acme"),
            ],
            snapshot,
        )

        first, second, third = review.rows
        assert first.status is TransactionStatus.MATCHED
        assert first.matched_entity_name == "Starbucks"
        assert first.matched_account_name == "6100 Meals & Entertainment"
        assert second.status is TransactionStatus.UNMATCHED
        assert second.chart_of_account_id == "coa-office"
        assert third.status is TransactionStatus.MATCHED
        assert third.chart_of_account_id is None

    def test_rematch_leaves_confirmed_rows_alone(self, review, snapshot):
        """Test that re-running matching never touches confirmed rows."""
        review.apply_matches([MatchResult(0, vendor_id="v-starbucks"), MatchResult(1), MatchResult(2)], snapshot)
        review.mark_confirmed(["temp-0"])

        review.apply_matches([MatchResult(0, vendor_id="v-staples"), MatchResult(1)], snapshot)

        row = review.get("temp-0")
        assert row.status is TransactionStatus.CONFIRMED
        assert row.vendor_id == "v-starbucks"
        assert review.get("temp-1").vendor_id == "v-staples"

    def test_unconfirmed_rows(self, review):
        """Test that confirmed rows drop out of the unconfirmed list."""
        review.mark_confirmed(["temp-1"])

        assert [r.id for r in review.unconfirmed] == ["temp-0", "temp-2"]

    def test_results_cover_only_unconfirmed_rows(self, review, snapshot):
        """Test that results for confirmed rows are not accepted."""
        review.mark_confirmed(["temp-0"])

        with pytest.raises(ReviewError):
            review.apply_matches([MatchResult(0), MatchResult(1), MatchResult(2)], snapshot)

    def test_rematch_discards_manual_edits(self, review, snapshot):
        """Test that non-confirmed rows are rebuilt from fresh results."""
        review.edit("temp-1", snapshot, vendor_id="v-staples")

        review.apply_matches([MatchResult(0), MatchResult(1), MatchResult(2)], snapshot)

        assert review.get("temp-1").status is TransactionStatus.UNMATCHED
        assert review.get("temp-1").vendor_id is None

    def test_result_count_must_match(self, review, snapshot):
        """Test that a short result list is rejected."""
        with pytest.raises(ReviewError):
            review.apply_matches([MatchResult(0)], snapshot)


class TestEdit:
    """Tests for manual edits."""

    def test_edit_moves_to_edited(self, review, snapshot):
        """Test that any edit sets the edited status and names."""
        row = review.edit("temp-2", snapshot, vendor_id="v-delta", chart_of_account_id="coa-airfare")

        assert row.status is TransactionStatus.EDITED
        assert row.matched_entity_name == "Delta Air Lines"
        assert row.matched_account_name == "5000 Travel: 5000.1 Airfare"

    def test_selecting_customer_clears_vendor(self, review, snapshot):
        """Test vendor/customer mutual exclusion."""
        review.edit("temp-0", snapshot, vendor_id="v-staples")

        row = review.edit("temp-0", snapshot, customer_id="c-acme")

        assert row.vendor_id is None
        assert row.customer_id == "c-acme"

    def test_omitted_fields_are_kept(self, review, snapshot):
        """Test that only the given fields change."""
        review.edit("temp-0", snapshot, vendor_id="v-staples", chart_of_account_id="coa-office")

        row = review.edit("temp-0", snapshot, chart_of_account_id=None)

        assert row.vendor_id == "v-staples"
        assert row.chart_of_account_id is None
        assert row.matched_account_name is None

    def test_both_entities_rejected(self, review, snapshot):
        """Test that a vendor and a customer cannot both be set."""
        with pytest.raises(ReviewError):
            review.edit("temp-0", snapshot, vendor_id="v-staples", customer_id="c-acme")

    def test_confirmed_row_is_immutable(self, review, snapshot):
        """Test that confirmed rows reject edits."""
        review.mark_confirmed(["temp-0"])

        with pytest.raises(ImmutableTransactionError):
            review.edit("temp-0", snapshot, vendor_id="v-staples")

    def test_unknown_row(self, review, snapshot):
        """Test that unknown row ids raise."""
        with pytest.raises(TransactionNotFoundError):
            review.edit("temp-9", snapshot, vendor_id="v-staples")


class TestConfirmation:
    """Tests for the confirmation helpers."""

    def test_pending_skips_confirmed_rows(self, review):
        """Test that confirming twice is a no-op."""
        review.mark_confirmed(["temp-1"])

        pending = review.pending_confirmation(["temp-1", "temp-0"])

        assert [r.id for r in pending] == ["temp-0"]
        assert review.pending_confirmation(["temp-1"]) == []

    def test_pending_rejects_unknown_ids(self, review):
        """Test that confirming an unknown id raises."""
        with pytest.raises(TransactionNotFoundError):
            review.pending_confirmation(["temp-7"])

    def test_to_document_strips_review_fields(self, review, snapshot):
        """Test the durable form of a row."""
        review.apply_matches(
            [MatchResult(0, vendor_id="v-starbucks", chart_of_account_id="coa-meals"), MatchResult(1), MatchResult(2)],
            snapshot,
        )

        document = review.to_document(review.get("temp-0"))

        assert document == {
            "companyId": "company-1",
            "date": "2024-03-01",
            "amount": -20.0,
            "description": "ROW 0",
            "memo": "note",
            "vendorId": "v-starbucks",
            "chartOfAccountId": "coa-meals",
        }

    def test_confirmed_lists_confirmed_rows(self, review):
        """Test listing confirmed rows."""
        review.mark_confirmed(["temp-2"])

        assert [r.id for r in review.confirmed()] == ["temp-2"]
