from fieldmap import config


def test_env_float_override(monkeypatch):
    monkeypatch.setenv("FIELDMAP_TEST_FLOAT", "12.5")
    assert config._env_float("FIELDMAP_TEST_FLOAT", 1.0) == 12.5


def test_env_float_ignores_garbage(monkeypatch):
    monkeypatch.setenv("FIELDMAP_TEST_FLOAT", "fast")
    assert config._env_float("FIELDMAP_TEST_FLOAT", 50.0) == 50.0


def test_env_int_override_and_default(monkeypatch):
    monkeypatch.setenv("FIELDMAP_TEST_INT", "7")
    assert config._env_int("FIELDMAP_TEST_INT", 5) == 7
    monkeypatch.delenv("FIELDMAP_TEST_INT")
    assert config._env_int("FIELDMAP_TEST_INT", 5) == 5
    monkeypatch.setenv("FIELDMAP_TEST_INT", "1.5")
    assert config._env_int("FIELDMAP_TEST_INT", 5) == 5


def test_business_defaults():
    assert config.GEOCODING_COUNTRY_CODE.lower() == "za"
    assert config.FALLBACK_SPEED_KMH > 0
    assert config.DEFAULT_CENTER == (28.0473, -26.2041)
    assert config.ROUTE_FIT_PADDING_PX == 50
    assert set(config.ROUTING_PROFILES) == {"driving", "walking", "cycling"}
