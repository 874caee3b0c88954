"""
Template expansion tests
"""

from datetime import date, timedelta

import pytest

from .conftest import MONDAY
from ..core.exceptions import (
    ApplyAbortedError,
    DatabaseError,
    TemplateNotFoundError,
    ValidationError,
)
from ..models.dish import MealType
from ..services import MenuExpansionService
from ..services.menu_expansion_service import days_in_month


class TestApplyWeek:

    def test_creates_seven_menus(self, expansion_service, daily_menu_service, standard_week, porridge):
        result = expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        assert len(result.created_menus) == 7
        assert result.updated_count == 0
        assert result.failed_dates == []
        assert [menu.date for menu in result.created_menus] == [
            MONDAY + timedelta(days=offset) for offset in range(7)
        ]

        monday = daily_menu_service.get_by_date(MONDAY)
        breakfast = monday.meal(MealType.BREAKFAST)
        assert [dish.dish_id for dish in breakfast.dishes] == [porridge.dish_id]
        assert breakfast.dishes[0].name == "Porridge"
        assert breakfast.child_count == 30
        assert monday.total_child_count == 30

    def test_empty_cells_give_empty_meals(self, expansion_service, daily_menu_service, standard_week):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        tuesday = daily_menu_service.get_by_date(MONDAY + timedelta(days=1))
        for meal_type in MealType:
            assert tuesday.meal(meal_type).dishes == []
        monday = daily_menu_service.get_by_date(MONDAY)
        assert monday.meal(MealType.LUNCH).dishes == []

    def test_start_mid_week_follows_calendar_weekday(self, expansion_service, daily_menu_service,
                                                      standard_week):
        # Thursday start: the only Monday is the fifth day
        thursday = MONDAY + timedelta(days=3)
        expansion_service.apply_template_to_week(standard_week.template_id, thursday, 10)

        next_monday = MONDAY + timedelta(days=7)
        assert daily_menu_service.get_by_date(next_monday).meal(MealType.BREAKFAST).dishes
        assert not daily_menu_service.get_by_date(thursday).meal(MealType.BREAKFAST).dishes

    def test_reapply_updates_instead_of_duplicating(self, expansion_service, daily_menu_service,
                                                    standard_week):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)
        result = expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 12)

        assert result.updated_count == 7
        assert "0 menus created, 7 updated" in result.message
        for offset in range(7):
            day = MONDAY + timedelta(days=offset)
            assert daily_menu_service.count_for_date(day) == 1
        assert daily_menu_service.get_by_date(MONDAY).total_child_count == 12

    def test_overlapping_weeks_keep_one_menu_per_date(self, expansion_service, daily_menu_service,
                                                      standard_week):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)
        result = expansion_service.apply_template_to_week(
            standard_week.template_id, MONDAY + timedelta(days=3), 30
        )

        assert result.updated_count == 4
        for offset in range(10):
            assert daily_menu_service.count_for_date(MONDAY + timedelta(days=offset)) == 1

    def test_overlapping_month_and_week(self, expansion_service, daily_menu_service, full_week):
        expansion_service.apply_template_to_month(full_week.template_id, MONDAY, 20)
        expansion_service.apply_template_to_week(full_week.template_id, MONDAY + timedelta(days=10), 20)

        assert len(daily_menu_service.list_daily_menus()) == 30

    def test_served_meal_is_kept_on_reapply(self, expansion_service, daily_menu_service,
                                            template_service, standard_week, milk_soup):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 10)
        menu = daily_menu_service.get_by_date(MONDAY)
        daily_menu_service.serve_meal(menu.menu_id, MealType.BREAKFAST)

        template_service.remove_dish_from_day(standard_week.template_id, "monday", "breakfast",
                                              standard_week.day("monday").breakfast[0].dish_id)
        template_service.add_dish_to_day(standard_week.template_id, "monday", "lunch", milk_soup.dish_id)
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 10)

        menu = daily_menu_service.get_by_date(MONDAY)
        assert menu.meal(MealType.BREAKFAST).is_served
        assert len(menu.meal(MealType.BREAKFAST).dishes) == 1
        assert [dish.dish_id for dish in menu.meal(MealType.LUNCH).dishes] == [milk_soup.dish_id]

    def test_snapshot_survives_dish_rename(self, expansion_service, daily_menu_service, dish_service,
                                           standard_week, porridge):
        from ..models.dish import DishUpdate

        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 10)
        dish_service.update_dish(porridge.dish_id, DishUpdate(name="Semolina"))

        breakfast = daily_menu_service.get_by_date(MONDAY).meal(MealType.BREAKFAST)
        assert breakfast.dishes[0].name == "Porridge"


class TestApplyMonth:

    @pytest.mark.parametrize("start,expected", [
        (date(2024, 2, 1), 29),
        (date(2023, 2, 1), 28),
        (date(2024, 4, 10), 30),
        (date(2024, 12, 15), 31),
    ])
    def test_month_length(self, start, expected):
        assert days_in_month(start) == expected

    def test_creates_one_menu_per_day_of_month(self, expansion_service, daily_menu_service, standard_week):
        start = date(2024, 2, 1)
        result = expansion_service.apply_template_to_month(standard_week.template_id, start, 15)

        assert len(result.created_menus) == 29
        menus = daily_menu_service.list_daily_menus()
        assert menus[0].date == start
        assert menus[-1].date == date(2024, 2, 29)

    def test_month_from_mid_month_runs_past_month_end(self, expansion_service, standard_week):
        start = date(2024, 4, 20)
        result = expansion_service.apply_template_to_month(standard_week.template_id, start, 15)

        assert len(result.created_menus) == 30
        assert result.created_menus[-1].date == start + timedelta(days=29)

    def test_requires_start_date(self, expansion_service, standard_week):
        with pytest.raises(ValidationError):
            expansion_service.apply_template_to_month(standard_week.template_id, None, 15)


class TestShortages:

    def test_shortages_are_reported_but_do_not_block(self, expansion_service, standard_week, oatmeal):
        result = expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        assert len(result.created_menus) == 7
        assert len(result.shortages) == 1
        shortage = result.shortages[0]
        assert shortage.product_id == oatmeal.product_id
        assert shortage.required == pytest.approx(1500)
        assert shortage.shortage == pytest.approx(500)
        assert "Warning: 1 products are short" in result.message

    def test_no_shortages_when_stock_covers(self, expansion_service, standard_week):
        result = expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 10)

        assert result.shortages == []
        assert "Warning" not in result.message

    def test_apply_does_not_touch_stock(self, expansion_service, product_service, standard_week, oatmeal):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)
        assert product_service.get_product(oatmeal.product_id).stock_quantity == 1000


class TestValidation:

    @pytest.mark.parametrize("child_count", [0, -5, None])
    def test_rejects_non_positive_child_count(self, expansion_service, daily_menu_service,
                                              standard_week, child_count):
        with pytest.raises(ValidationError):
            expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, child_count)
        assert daily_menu_service.list_daily_menus() == []

    def test_unknown_template_writes_nothing(self, expansion_service, daily_menu_service):
        with pytest.raises(TemplateNotFoundError):
            expansion_service.apply_template_to_week(4242, MONDAY, 10)
        assert daily_menu_service.list_daily_menus() == []

    def test_unknown_failure_mode(self, test_db):
        with pytest.raises(ValueError):
            MenuExpansionService(test_db, failure_mode="sometimes")


def _fail_on(service, bad_day):
    """Make upsert_menu_for_date fail for one date"""
    original = service.daily_menus.upsert_menu_for_date

    def upsert(menu_date, *args, **kwargs):
        if menu_date == bad_day:
            raise DatabaseError("disk full")
        return original(menu_date, *args, **kwargs)

    return upsert


class TestFailureModes:

    def test_best_effort_reports_failed_days(self, expansion_service, daily_menu_service,
                                             standard_week, monkeypatch):
        bad_day = MONDAY + timedelta(days=2)
        monkeypatch.setattr(expansion_service.daily_menus, "upsert_menu_for_date",
                            _fail_on(expansion_service, bad_day))

        result = expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        assert len(result.created_menus) == 6
        assert len(result.failed_dates) == 1
        assert result.failed_dates[0].date == bad_day
        assert result.failed_dates[0].error == "disk full"
        assert "1 days failed" in result.message
        assert daily_menu_service.find_by_date(bad_day) is None
        assert daily_menu_service.find_by_date(MONDAY) is not None

    def test_fail_fast_rolls_back_everything(self, test_db, daily_menu_service, standard_week, monkeypatch):
        service = MenuExpansionService(test_db, failure_mode="fail_fast")
        bad_day = MONDAY + timedelta(days=4)
        monkeypatch.setattr(service.daily_menus, "upsert_menu_for_date", _fail_on(service, bad_day))

        with pytest.raises(ApplyAbortedError) as exc_info:
            service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        assert exc_info.value.details["failed_date"] == bad_day.isoformat()
        assert len(exc_info.value.details["rolled_back"]) == 4
        assert daily_menu_service.list_daily_menus() == []

    def test_fail_fast_success(self, test_db, daily_menu_service, standard_week):
        service = MenuExpansionService(test_db, failure_mode="fail_fast")
        result = service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        assert len(result.created_menus) == 7
        assert len(daily_menu_service.list_daily_menus()) == 7

    def test_apply_is_logged(self, expansion_service, standard_week, test_db):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 30)

        row = test_db.execute_one(
            "SELECT COUNT(*) FROM logs WHERE action = 'template_apply_week'"
        )
        assert row[0] == 1
