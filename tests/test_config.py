from flighttrack.config import Settings, load_provider_descriptors


def test_adsbx_is_skipped_without_key():
    config = Settings()
    config.adsbx_api_key = ""

    names = [descriptor.name for descriptor in load_provider_descriptors(config)]

    assert names == ["airplanes.live", "opensky"]


def test_adsbx_is_registered_with_key():
    config = Settings()
    config.adsbx_api_key = "secret"

    descriptors = {d.name: d for d in load_provider_descriptors(config)}

    assert descriptors["adsbexchange"].api_key == "secret"
    assert descriptors["adsbexchange"].priority == 1
    assert descriptors["opensky"].priority == 2


def test_timeouts_flow_into_descriptors(monkeypatch):
    config = Settings()
    monkeypatch.setattr(config, "opensky_timeout", 3.5)

    descriptors = {d.name: d for d in load_provider_descriptors(config)}

    assert descriptors["opensky"].timeout_s == 3.5
