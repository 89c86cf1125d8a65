"""Unit tests for MirrorStore."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from contribution_gateway.infrastructure.database import create_db_engine, drop_all_tables, init_db
from contribution_gateway.infrastructure.models import StripePlan, StripeSubscription
from contribution_gateway.infrastructure.repository import MirrorStore
from contribution_gateway.models import CustomerMapping, SubscriptionWatch


def _watch(customer_id="cus_1", invoice_id="inv_1", end_time=None) -> SubscriptionWatch:
    return SubscriptionWatch(
        gateway_customer_id=customer_id,
        local_invoice_id=invoice_id,
        end_time=end_time,
        is_live=False,
    )


class TestCustomerMappings:
    """Tests for the email to customer mirror."""

    def test_find_missing_customer(self, store: MirrorStore) -> None:
        """Test lookup of an unknown email returns None."""
        assert store.find_customer_by_email("nobody@example.org") is None

    def test_save_and_find_customer(self, store: MirrorStore) -> None:
        """Test a saved mapping is found by exact email."""
        # Act
        saved = store.save_customer_mapping("a@example.org", "cus_123")

        # Assert
        assert saved == CustomerMapping("a@example.org", "cus_123")
        assert store.find_customer_by_email("a@example.org") == saved

    def test_email_lookup_is_exact(self, store: MirrorStore) -> None:
        """Test emails are matched as supplied, without case folding."""
        store.save_customer_mapping("a@example.org", "cus_123")

        assert store.find_customer_by_email("A@example.org") is None

    def test_delete_customer_mapping(self, store: MirrorStore) -> None:
        """Test deleting a mapping removes it."""
        store.save_customer_mapping("a@example.org", "cus_123")

        store.delete_customer_mapping("a@example.org")

        assert store.find_customer_by_email("a@example.org") is None

    def test_delete_missing_mapping_is_noop(self, store: MirrorStore) -> None:
        """Test deleting an unknown email does nothing."""
        store.delete_customer_mapping("nobody@example.org")


class TestPlanMappings:
    """Tests for the plan mirror."""

    def test_plan_exists(self, store: MirrorStore) -> None:
        """Test a saved plan key is reported as existing."""
        assert store.plan_exists("every-1-month-2550") is False

        store.save_plan_mapping("every-1-month-2550")

        assert store.plan_exists("every-1-month-2550") is True

    def test_save_plan_twice_keeps_one_row(self, store: MirrorStore, db_session) -> None:
        """Test re-saving a plan key is not an error."""
        store.save_plan_mapping("every-1-month-2550")
        db_session.expunge_all()

        store.save_plan_mapping("every-1-month-2550")

        assert db_session.query(StripePlan).count() == 1


class TestSubscriptionWatch:
    """Tests for the subscription watch list."""

    def test_save_and_find_watch(self, store: MirrorStore) -> None:
        """Test a saved watch is found by customer."""
        watch = _watch(end_time=1800000000)

        assert store.save_watch(watch) == watch
        assert store.find_active_watch("cus_1") == watch

    def test_indefinite_watch_has_null_end_time(self, store: MirrorStore) -> None:
        """Test open-ended lineages store no end time."""
        store.save_watch(_watch())

        assert store.find_active_watch("cus_1").end_time is None

    def test_cancel_watch_cancels_local_record(self, store: MirrorStore, records, db_session) -> None:
        """Test cancelling a watch cancels the local contribution and drops the row."""
        # Arrange
        store.save_watch(_watch(invoice_id="inv_old"))
        cancelled_at = datetime(2026, 1, 15, tzinfo=timezone.utc)

        # Act
        store.cancel_watch("inv_old", cancelled_at)

        # Assert
        records.cancel_by_invoice_id.assert_called_once_with("inv_old", cancelled_at)
        assert store.find_active_watch("cus_1") is None
        assert db_session.query(StripeSubscription).count() == 0

    def test_cancel_watch_defaults_to_now(self, store: MirrorStore, records) -> None:
        """Test the cancellation time defaults to the current UTC time."""
        store.save_watch(_watch(invoice_id="inv_old"))

        store.cancel_watch("inv_old")

        _, cancelled_at = records.cancel_by_invoice_id.call_args.args
        assert cancelled_at.tzinfo is not None

    def test_save_watch_conflict_returns_existing(self, store: MirrorStore) -> None:
        """Test a second row for the same customer returns the stored one."""
        store.save_watch(_watch(invoice_id="inv_first"))

        saved = store.save_watch(_watch(invoice_id="inv_second"))

        assert saved.local_invoice_id == "inv_first"
        assert store.find_active_watch("cus_1").local_invoice_id == "inv_first"


class TestConcurrentInserts:
    """Two requests racing on the same unique key."""

    @pytest.fixture
    def file_engine(self, tmp_path):
        """File database so two sessions use separate connections."""
        engine = create_db_engine(f"sqlite:///{tmp_path / 'mirror.db'}")
        init_db(engine)
        yield engine
        drop_all_tables(engine)
        engine.dispose()

    @pytest.fixture
    def sessions(self, file_engine):
        factory = sessionmaker(bind=file_engine, autoflush=False)
        first, second = factory(), factory()
        yield first, second
        first.close()
        second.close()

    def test_customer_mapping_race_keeps_winner(self, sessions, records) -> None:
        """Test the losing request reads back the winning mapping."""
        # Arrange
        first, second = sessions
        MirrorStore(first, records).save_customer_mapping("a@example.org", "cus_winner")
        first.commit()

        # Act
        mapping = MirrorStore(second, records).save_customer_mapping("a@example.org", "cus_loser")
        second.commit()

        # Assert
        assert mapping.gateway_customer_id == "cus_winner"
        assert (
            MirrorStore(first, records).find_customer_by_email("a@example.org").gateway_customer_id
            == "cus_winner"
        )

    def test_plan_mapping_race_is_ignored(self, sessions, records) -> None:
        """Test a concurrently saved plan leaves exactly one row."""
        first, second = sessions
        MirrorStore(first, records).save_plan_mapping("every-1-month-2550")
        first.commit()

        MirrorStore(second, records).save_plan_mapping("every-1-month-2550")
        second.commit()

        assert first.query(StripePlan).count() == 1

    def test_watch_race_returns_existing(self, sessions, records) -> None:
        """Test the losing watch insert sees the winner's invoice."""
        first, second = sessions
        MirrorStore(first, records).save_watch(_watch(invoice_id="inv_a"))
        first.commit()

        saved = MirrorStore(second, records).save_watch(_watch(invoice_id="inv_b"))

        assert saved.local_invoice_id == "inv_a"
