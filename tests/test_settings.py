import pytest

from snipq.errors import InvalidSettings
from snipq.models import Settings


def test_defaults_when_keys_are_missing():
    settings = Settings.from_dict({})
    assert settings == Settings()
    assert Settings.from_dict({"locale": None, "timezone": ""}).timezone == "Local"


def test_camel_case_keys_are_read():
    settings = Settings.from_dict({
        "prefix": ";;",
        "strictBoundaries": False,
        "excludedApps": ["keepass", "1password"],
        "locale": "vi-VN",
        "defaultDateFormat": "02/01/2006",
        "timezone": "Asia/Ho_Chi_Minh",
        "historyLimit": "50",
        "pinForSensitive": False,
    })
    assert settings.prefix == ";;"
    assert settings.strict_boundaries is False
    assert settings.excluded_apps == frozenset({"keepass", "1password"})
    assert settings.history_limit == 50
    assert settings.to_dict()["excludedApps"] == ["1password", "keepass"]


def test_single_excluded_app_is_not_split_into_characters():
    assert Settings.from_dict({"excludedApps": "keepass"}).excluded_apps == frozenset({"keepass"})


def test_wrong_types_are_rejected():
    for data in (
        {"locale": 123},
        {"timezone": ["UTC"]},
        {"defaultDateFormat": 20240101},
        {"prefix": 7},
        {"excludedApps": {"keepass": True}},
        {"excludedApps": ["keepass", 3]},
        {"strictBoundaries": "no"},
        {"historyLimit": "lots"},
        {"historyLimit": 20000},
        {"prefix": "  "},
    ):
        with pytest.raises(InvalidSettings):
            Settings.from_dict(data)
