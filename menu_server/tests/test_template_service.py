"""
Weekly menu template tests
"""

import pytest

from .conftest import MONDAY
from ..core.exceptions import DishNotFoundError, TemplateNotFoundError, ValidationError
from ..models.dish import MEAL_TYPES, MealType
from ..models.menu import WEEKDAYS, Weekday, WeeklyMenuTemplateUpdate


class TestCreateTemplate:

    def test_new_template_has_28_empty_cells(self, template_service):
        template = template_service.create_template("Autumn", 25, description="Sep-Nov")

        assert template.name == "Autumn"
        assert template.default_child_count == 25
        assert template.is_active
        assert set(template.days) == set(WEEKDAYS)
        cells = [template.day(day).dishes_for(meal) for day in WEEKDAYS for meal in MEAL_TYPES]
        assert len(cells) == 28
        assert all(cell == [] for cell in cells)

    def test_default_child_count_from_settings(self, template_service):
        assert template_service.create_template("Defaults").default_child_count == 30

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_name_is_required(self, template_service, name):
        with pytest.raises(ValidationError):
            template_service.create_template(name, 20)
        assert template_service.list_templates() == []

    def test_child_count_must_be_positive(self, template_service):
        with pytest.raises(ValidationError):
            template_service.create_template("Zero", 0)


class TestTemplateCells:

    def test_add_is_idempotent(self, template_service, standard_week, porridge):
        template = template_service.add_dish_to_day(
            standard_week.template_id, "monday", "breakfast", porridge.dish_id
        )
        assert [d.dish_id for d in template.day(Weekday.MONDAY).breakfast] == [porridge.dish_id]

    def test_add_preserves_insertion_order(self, template_service, standard_week, milk_soup, baked_apples):
        template_id = standard_week.template_id
        template_service.add_dish_to_day(template_id, "friday", "dinner", baked_apples.dish_id)
        template = template_service.add_dish_to_day(template_id, "friday", "dinner", milk_soup.dish_id)

        names = [d.name for d in template.day(Weekday.FRIDAY).dinner]
        assert names == ["Baked apples", "Milk soup"]

    def test_other_cells_are_untouched(self, template_service, standard_week, milk_soup):
        template = template_service.add_dish_to_day(
            standard_week.template_id, "tuesday", "lunch", milk_soup.dish_id
        )
        filled = [
            (day, meal) for day in WEEKDAYS for meal in MEAL_TYPES
            if template.day(day).dishes_for(meal)
        ]
        assert filled == [(Weekday.MONDAY, MealType.BREAKFAST), (Weekday.TUESDAY, MealType.LUNCH)]

    def test_remove_absent_dish_is_noop(self, template_service, standard_week, milk_soup):
        before = template_service.get_template(standard_week.template_id)
        after = template_service.remove_dish_from_day(
            standard_week.template_id, "monday", "breakfast", milk_soup.dish_id
        )
        assert after.days == before.days
        assert after.updated_at == before.updated_at

    def test_remove(self, template_service, standard_week, porridge):
        template = template_service.remove_dish_from_day(
            standard_week.template_id, "monday", "breakfast", porridge.dish_id
        )
        assert template.day(Weekday.MONDAY).breakfast == []

    def test_unknown_dish(self, template_service, standard_week):
        with pytest.raises(DishNotFoundError):
            template_service.add_dish_to_day(standard_week.template_id, "monday", "lunch", 555)

    def test_unknown_day_or_meal(self, template_service, standard_week, porridge):
        with pytest.raises(ValidationError):
            template_service.add_dish_to_day(standard_week.template_id, "someday", "lunch", porridge.dish_id)
        with pytest.raises(ValidationError):
            template_service.add_dish_to_day(standard_week.template_id, "monday", "brunch", porridge.dish_id)

    def test_unknown_template(self, template_service, porridge):
        with pytest.raises(TemplateNotFoundError):
            template_service.add_dish_to_day(31337, "monday", "lunch", porridge.dish_id)


class TestTemplateLifecycle:

    def test_update_header(self, template_service, standard_week):
        template = template_service.update_template(
            standard_week.template_id,
            WeeklyMenuTemplateUpdate(name="Summer", default_child_count=18, is_active=False),
        )
        assert template.name == "Summer"
        assert template.default_child_count == 18
        assert not template.is_active
        assert template.day(Weekday.MONDAY).breakfast

    def test_list_active(self, template_service, standard_week):
        other = template_service.create_template("Winter", 20)
        template_service.update_template(other.template_id, WeeklyMenuTemplateUpdate(is_active=False))

        active = template_service.list_templates(is_active=True)
        assert [t.template_id for t in active] == [standard_week.template_id]

    def test_delete_keeps_daily_menus(self, template_service, expansion_service, daily_menu_service,
                                      standard_week):
        expansion_service.apply_template_to_week(standard_week.template_id, MONDAY, 10)
        template_service.delete_template(standard_week.template_id)

        with pytest.raises(TemplateNotFoundError):
            template_service.get_template(standard_week.template_id)
        assert len(daily_menu_service.list_daily_menus()) == 7
