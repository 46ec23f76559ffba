"""Ingredient usage resolution and restock severity tiers."""

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from restaurant_pos.core.config import Settings
from restaurant_pos.models import InventoryItem
from restaurant_pos.services.inventory import (
    RestockSeverity,
    apply_inventory_usage,
    collect_ingredient_usage,
    restock_report,
    restock_severity,
)


class ExplodingSession:
    """Any query is a failure."""

    async def execute(self, *args, **kwargs):
        raise AssertionError("no query expected")


def inventory_ids(engine) -> dict[str, int]:
    with Session(engine) as session:
        rows = session.execute(select(InventoryItem.name, InventoryItem.inventory_id)).all()
    return dict(rows)


class TestCollectIngredientUsage:
    @pytest.mark.anyio
    async def test_null_and_empty_names_skip_the_query(self):
        assert await collect_ingredient_usage(ExplodingSession(), [None, None, None], 1) == {}
        assert await collect_ingredient_usage(ExplodingSession(), ["", None], 4) == {}

    @pytest.mark.anyio
    async def test_shared_inventory_is_summed(self, session_factory, sync_engine):
        ids = inventory_ids(sync_engine)

        async with session_factory() as session:
            usage = await collect_ingredient_usage(
                session, ["Orange Chicken", "Chicken Egg Roll", None], 2
            )

        assert usage[ids["Chicken"]] == pytest.approx(2.5)
        assert usage[ids["Orange Sauce"]] == pytest.approx(1.0)
        assert usage[ids["Egg Roll Wrapper"]] == pytest.approx(2.0)
        assert ids["Beef"] not in usage

    @pytest.mark.anyio
    async def test_unknown_name_consumes_nothing(self, session_factory):
        async with session_factory() as session:
            assert await collect_ingredient_usage(session, ["Mystery Meat"], 3) == {}

    @pytest.mark.anyio
    async def test_apply_empty_usage_is_a_no_op(self):
        assert await apply_inventory_usage(ExplodingSession(), {}) == []


class TestRestockSeverity:
    @pytest.fixture
    def settings(self):
        return Settings(
            restock_critical_threshold=10,
            restock_medium_threshold=25,
            restock_low_threshold=50,
        )

    @pytest.mark.parametrize(
        "quantity, expected",
        [
            (-3, RestockSeverity.CRITICAL),
            (10, RestockSeverity.CRITICAL),
            (10.5, RestockSeverity.MEDIUM),
            (25, RestockSeverity.MEDIUM),
            (50, RestockSeverity.LOW),
            (50.01, RestockSeverity.OK),
        ],
    )
    def test_tiers(self, settings, quantity, expected):
        assert restock_severity(quantity, settings) == expected

    def test_thresholds_must_be_ordered(self):
        with pytest.raises(ValueError):
            Settings(
                restock_critical_threshold=30,
                restock_medium_threshold=20,
                restock_low_threshold=50,
            )

    @pytest.mark.anyio
    async def test_report_lists_low_stock_most_urgent_first(self, session_factory, settings):
        async with session_factory() as session:
            report = await restock_report(session, settings)

        assert [(item["name"], item["restock_severity"]) for item in report] == [
            ("Napkins", RestockSeverity.CRITICAL),
            ("Egg Roll Wrapper", RestockSeverity.LOW),
            ("Orange Sauce", RestockSeverity.LOW),
        ]
