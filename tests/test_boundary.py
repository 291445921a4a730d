import pytest

from snipq.boundary import BoundaryValidator
from snipq.errors import AppExcluded, BoundaryViolation
from snipq.models import ExpansionContext, Settings


def test_strict_boundary_rejects_trigger_inside_word():
    validator = BoundaryValidator()
    with pytest.raises(BoundaryViolation):
        validator.check(":ty", ExpansionContext(surrounding_text="xx:tyxx"), Settings(strict_boundaries=True))


def test_strict_boundary_accepts_isolated_trigger():
    validator = BoundaryValidator()
    validator.check(":ty", ExpansionContext(surrounding_text=" :ty "), Settings(strict_boundaries=True))
    validator.check(":ty", ExpansionContext(surrounding_text=":ty"), Settings(strict_boundaries=True))
    validator.check(":ty", ExpansionContext(surrounding_text="(:ty)."), Settings(strict_boundaries=True))


def test_only_one_side_touching_a_word_is_a_violation():
    validator = BoundaryValidator()
    settings = Settings(strict_boundaries=True)
    with pytest.raises(BoundaryViolation):
        validator.check(":ty", ExpansionContext(surrounding_text="a:ty "), settings)
    with pytest.raises(BoundaryViolation):
        validator.check(":ty", ExpansionContext(surrounding_text=" :ty_"), settings)


def test_explicit_trigger_start_is_used():
    validator = BoundaryValidator()
    settings = Settings(strict_boundaries=True)
    text = "x:ty :ty"
    validator.check(":ty", ExpansionContext(surrounding_text=text, trigger_start=5), settings)
    with pytest.raises(BoundaryViolation):
        validator.check(":ty", ExpansionContext(surrounding_text=text, trigger_start=1), settings)


def test_trigger_missing_from_text_is_a_violation():
    with pytest.raises(BoundaryViolation):
        BoundaryValidator().check(":ty", ExpansionContext(surrounding_text="hello"), Settings())


def test_non_strict_or_uncaptured_contexts_skip_boundary_checks():
    validator = BoundaryValidator()
    validator.check(":ty", ExpansionContext(surrounding_text="xx:tyxx"), Settings(strict_boundaries=False))
    validator.check(":ty", ExpansionContext(), Settings(strict_boundaries=True))
    validator.check(
        ":ty",
        ExpansionContext(surrounding_text="xx:tyxx", strict_boundaries=False),
        Settings(strict_boundaries=True),
    )


def test_request_override_can_enable_strict_boundaries():
    with pytest.raises(BoundaryViolation):
        BoundaryValidator().check(
            ":ty",
            ExpansionContext(surrounding_text="xx:tyxx", strict_boundaries=True),
            Settings(strict_boundaries=False),
        )


def test_excluded_app_wins_over_boundary_outcome():
    settings = Settings(excluded_apps=frozenset({"com.example.terminal"}))
    validator = BoundaryValidator()
    with pytest.raises(AppExcluded):
        validator.check(":ty", ExpansionContext(app_id="com.example.terminal", surrounding_text=" :ty "), settings)
    with pytest.raises(AppExcluded):
        validator.check(":ty", ExpansionContext(app_id="com.example.terminal", surrounding_text="xx:tyxx"), settings)
    validator.check(":ty", ExpansionContext(app_id="com.example.editor"), settings)
