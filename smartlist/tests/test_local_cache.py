import pytest

from smartlist.core.errors import ValidationError
from smartlist.features.cache.local import THEME_KEY


def test_missing_key_returns_default(cache):
    assert cache.get("tasks") is None
    assert cache.get("tasks", []) == []
    assert not cache.has("tasks")


def test_set_overwrites_and_round_trips_json(cache):
    cache.set("tasks", [{"id": "a"}])
    cache.set("tasks", [{"id": "b", "experience": 150}])

    assert cache.get("tasks") == [{"id": "b", "experience": 150}]


def test_set_many_and_clear(cache):
    cache.set_many({"authToken": "tok", "userId": "u1", "experience": 10})

    cache.clear(["authToken", "userId"])

    assert not cache.has("authToken")
    assert not cache.has("userId")
    assert cache.get("experience") == 10


def test_theme_defaults_to_light_and_rejects_unknown(cache):
    assert cache.get_theme() == "light"

    cache.set_theme("dark")
    assert cache.get_theme() == "dark"

    with pytest.raises(ValidationError):
        cache.set_theme("neon")
    assert cache.get(THEME_KEY) == "dark"


def test_unknown_stored_theme_falls_back(cache):
    cache.set(THEME_KEY, "sepia")
    assert cache.get_theme() == "light"
