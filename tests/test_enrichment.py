import httpx
import pytest

from flighttrack.providers import PhotoLookup, RouteLookup
from flighttrack.services.cache import EnrichmentCache, JsonFileStore
from flighttrack.services.enrichment import EnrichmentService

ROUTE_PAYLOAD = {
    "response": {
        "flightroute": {
            "callsign": "BAW117",
            "airline": {"name": "British Airways", "icao": "BAW"},
            "origin": {
                "iata_code": "LHR",
                "icao_code": "EGLL",
                "name": "London Heathrow Airport",
                "municipality": "London",
                "country_name": "United Kingdom",
                "latitude": 51.4706,
                "longitude": -0.461941,
            },
            "destination": {
                "iata_code": "JFK",
                "icao_code": "KJFK",
                "name": "John F Kennedy International Airport",
                "municipality": "New York",
                "country_name": "United States",
                "latitude": 40.639801,
                "longitude": -73.7789,
            },
        }
    }
}

PHOTO_PAYLOAD = {
    "photos": [
        {
            "id": "123",
            "thumbnail": {"src": "https://t.plnspttrs.net/small.jpg"},
            "thumbnail_large": {"src": "https://t.plnspttrs.net/large.jpg"},
            "link": "https://www.planespotters.net/photo/123",
            "photographer": "A. Spotter",
        }
    ]
}


def _service(tmp_path, clock, handler):
    transport = httpx.MockTransport(handler)
    cache = EnrichmentCache(JsonFileStore(tmp_path / "cache.json"), clock=clock)
    return EnrichmentService(
        cache,
        routes=RouteLookup(base_url="https://routes.test/v0", transport=transport),
        photos=PhotoLookup(base_url="https://photos.test/pub/photos", transport=transport),
        route_ttl_s=1800,
        photo_ttl_s=86400,
    )


@pytest.mark.anyio
async def test_route_lookup_is_cached(tmp_path, clock):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request.url.path)
        return httpx.Response(200, json=ROUTE_PAYLOAD)

    service = _service(tmp_path, clock, handler)

    route = await service.get_route("baw117")
    again = await service.get_route("BAW 117")

    assert calls == ["/v0/callsign/BAW117"]
    assert route.origin.iata == "LHR"
    assert route.destination.city == "New York"
    assert route.airline_name == "British Airways"
    assert again == route

    clock.advance(1800)
    await service.get_route("BAW117")
    assert len(calls) == 2


@pytest.mark.anyio
async def test_unknown_route_is_not_cached(tmp_path, clock):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request.url.path)
        return httpx.Response(404, json={"response": "unknown callsign"})

    service = _service(tmp_path, clock, handler)

    assert await service.get_route("ZZZ999") is None
    assert await service.get_route("ZZZ999") is None
    assert len(calls) == 2


@pytest.mark.anyio
async def test_missing_photo_is_cached(tmp_path, clock):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request.url.path)
        return httpx.Response(200, json={"photos": []})

    service = _service(tmp_path, clock, handler)

    assert await service.get_photo("ABC123") is None
    assert await service.get_photo("abc123") is None
    assert calls == ["/pub/photos/hex/abc123"]


@pytest.mark.anyio
async def test_photo_lookup_parses_first_photo(tmp_path, clock):
    def handler(request: httpx.Request):
        return httpx.Response(200, json=PHOTO_PAYLOAD)

    service = _service(tmp_path, clock, handler)

    photo = await service.get_photo("abc123")

    assert photo.image_url == "https://t.plnspttrs.net/large.jpg"
    assert photo.thumbnail_url == "https://t.plnspttrs.net/small.jpg"
    assert photo.photographer == "A. Spotter"


@pytest.mark.anyio
async def test_lookup_failures_are_not_cached(tmp_path, clock):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request.url.path)
        return httpx.Response(503, text="down")

    service = _service(tmp_path, clock, handler)

    assert await service.get_photo("abc123") is None
    assert await service.get_photo("abc123") is None
    assert len(calls) == 2
