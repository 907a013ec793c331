"""Tests for the order draft (cart) and the per-table draft registry."""

import pytest

from qrmenu.core.exceptions import EmptyOrderError, SubmissionInProgressError
from qrmenu.schemas import OrderStatus
from qrmenu.services.cart import DraftRegistry, OrderDraft, normalize_table_id

from tests.helpers import make_item


@pytest.fixture
def curry():
    return make_item("item-a", 12.99, "Vegetable Curry")


@pytest.fixture
def lassi():
    return make_item("item-b", 4.99, "Mango Lassi")


class TestAddItem:

    def test_same_item_twice_merges_into_one_line(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 2)
        draft.add_item(curry, 3)

        assert len(draft) == 1
        assert draft.get("item-a").quantity == 5

    def test_line_snapshots_name_and_price(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 1)

        line = draft.get("item-a")
        assert (line.name, line.price) == ("Vegetable Curry", 12.99)

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_is_ignored(self, curry, quantity):
        notifications = []
        draft = OrderDraft(notify=notifications.append)
        draft.add_item(curry, quantity)

        assert draft.is_empty
        assert notifications == []

    def test_emits_added_notification(self, curry):
        notifications = []
        draft = OrderDraft(notify=notifications.append)
        draft.add_item(curry, 2)

        assert len(notifications) == 1
        assert notifications[0].title == "Added to order"
        assert notifications[0].description == "2 × Vegetable Curry"

    def test_failing_notifier_does_not_break_add(self, curry):
        def broken(notification):
            raise RuntimeError("toast service down")

        draft = OrderDraft(notify=broken)
        draft.add_item(curry, 1)

        assert draft.get("item-a").quantity == 1

    def test_lines_keep_insertion_order(self, curry, lassi):
        draft = OrderDraft()
        draft.add_item(lassi)
        draft.add_item(curry)
        draft.add_item(lassi)

        assert [line.item_id for line in draft.lines] == ["item-b", "item-a"]


class TestUpdateAndRemove:

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_update_to_non_positive_removes_line(self, curry, quantity):
        draft = OrderDraft()
        draft.add_item(curry, 2)
        draft.update_quantity("item-a", quantity)

        assert "item-a" not in draft

    def test_update_replaces_quantity(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 2)
        draft.update_quantity("item-a", 7)

        assert draft.get("item-a").quantity == 7

    def test_update_absent_item_is_noop(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 2)
        draft.update_quantity("missing", 4)

        assert [line.item_id for line in draft.lines] == ["item-a"]

    def test_remove_present_and_absent(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 1)
        draft.remove_item("missing")
        draft.remove_item("item-a")

        assert draft.is_empty


class TestTotals:

    def test_empty_total_is_zero(self):
        assert OrderDraft().compute_total() == 0

    def test_total_and_item_count(self, curry, lassi):
        draft = OrderDraft()
        draft.add_item(curry, 2)
        draft.add_item(lassi, 1)

        assert draft.compute_total() == pytest.approx(30.97, abs=0.005)
        assert draft.item_count == 3


class TestSubmit:

    def test_submit_builds_pending_order_and_clears(self, curry, lassi):
        draft = OrderDraft()
        draft.add_item(curry, 2)
        draft.add_item(lassi, 1)

        order = draft.submit("7")

        assert order.total == pytest.approx(30.97, abs=0.005)
        assert order.status == OrderStatus.PENDING
        assert len(order.items) == 2
        assert order.table_id == "7"
        assert order.id.startswith("order-")
        assert order.timestamp.tzinfo is not None
        assert draft.is_empty

    def test_submit_empty_raises(self):
        draft = OrderDraft()
        with pytest.raises(EmptyOrderError):
            draft.submit("7")

    def test_order_ids_are_unique(self, curry):
        ids = set()
        draft = OrderDraft()
        for _ in range(20):
            draft.add_item(curry)
            ids.add(draft.submit("1").id)
        assert len(ids) == 20

    def test_later_draft_changes_do_not_touch_order(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 1)
        order = draft.submit("3")

        draft.add_item(curry, 5)

        assert order.items[0].quantity == 1
        assert order.total == pytest.approx(12.99)


class TestSubmitting:

    async def test_success_clears_draft(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 2)

        async with draft.submitting("4") as order:
            assert draft.is_submitting
            assert len(draft) == 1

        assert order.total == pytest.approx(25.98)
        assert draft.is_empty
        assert not draft.is_submitting

    async def test_failure_keeps_lines(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 2)

        with pytest.raises(RuntimeError):
            async with draft.submitting("4"):
                raise RuntimeError("store failed")

        assert draft.get("item-a").quantity == 2
        assert not draft.is_submitting

    async def test_overlapping_submission_rejected(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 1)

        async with draft.submitting("4"):
            with pytest.raises(SubmissionInProgressError):
                draft.submit("4")
            with pytest.raises(SubmissionInProgressError):
                async with draft.submitting("4"):
                    pass

    async def test_mutations_rejected_while_in_flight(self, curry):
        draft = OrderDraft()
        draft.add_item(curry, 1)

        async with draft.submitting("4"):
            for mutate in (
                lambda: draft.add_item(curry, 1),
                lambda: draft.update_quantity("item-a", 3),
                lambda: draft.remove_item("item-a"),
                draft.clear,
            ):
                with pytest.raises(SubmissionInProgressError):
                    mutate()

    async def test_empty_draft_never_enters_flight(self):
        draft = OrderDraft()
        with pytest.raises(EmptyOrderError):
            async with draft.submitting("4"):
                pass
        assert not draft.is_submitting


class TestDraftRegistry:

    def test_one_draft_per_table(self):
        registry = DraftRegistry()
        assert registry.get("5") is registry.get(" 5 ")
        assert registry.get("5") is not registry.get("6")

    def test_discard(self, curry):
        registry = DraftRegistry()
        registry.get("5").add_item(curry)

        assert registry.discard("5") is True
        assert registry.discard("5") is False
        assert registry.get("5").is_empty

    def test_blank_table_id_rejected(self):
        with pytest.raises(ValueError):
            DraftRegistry().get("   ")

    def test_notifier_receives_table_channel(self, curry):
        received = []
        registry = DraftRegistry(
            notifier_for=lambda table_id: lambda n: received.append((table_id, n.title))
        )
        registry.get("9").add_item(curry)

        assert received == [("9", "Added to order")]

    @pytest.mark.parametrize("table_id", ["@admin", " @admin", "@kitchen"])
    def test_reserved_prefix_rejected(self, table_id):
        registry = DraftRegistry()
        with pytest.raises(ValueError):
            registry.get(table_id)
        with pytest.raises(ValueError):
            normalize_table_id(table_id)
        assert len(registry) == 0

    def test_peek_does_not_create(self):
        registry = DraftRegistry()

        for _ in range(5):
            assert registry.peek("5") is None
        assert len(registry) == 0

    def test_peek_returns_existing(self, curry):
        registry = DraftRegistry()
        draft = registry.get("5")
        draft.add_item(curry)

        assert registry.peek(" 5 ") is draft

    def test_release_forgets_only_empty_drafts(self, curry):
        registry = DraftRegistry()
        registry.get("5").add_item(curry)
        registry.get("6")

        assert registry.release("5") is False
        assert registry.release("6") is True
        assert registry.release("7") is False
        assert len(registry) == 1
        assert registry.peek("6") is None

    async def test_release_after_submission_completes(self, curry):
        registry = DraftRegistry()
        draft = registry.get("5")
        draft.add_item(curry)

        async with draft.submitting("5"):
            assert registry.release("5") is False
        assert registry.release("5") is True
        assert len(registry) == 0
