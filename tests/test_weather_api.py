"""
WeatherAPI.com 클라이언트 테스트 (httpx MockTransport)
"""

import httpx
import pytest

from weatherpulse.collector import WeatherApiClient
from weatherpulse.errors import InvalidCity, WeatherApiUnauthorized, WeatherLookupError

SAMPLE_RESPONSE = {
    "location": {"name": "Kyiv", "region": "Kyiv City", "country": "Ukraine"},
    "current": {
        "temp_c": 21.0,
        "temp_f": 69.8,
        "humidity": 48,
        "condition": {"text": "Sunny", "icon": "//cdn.weatherapi.com/113.png"},
    },
}


def make_client(handler) -> WeatherApiClient:
    transport = httpx.MockTransport(handler)
    return WeatherApiClient(
        api_key="test-key",
        base_url="https://weather.test/v1",
        client=httpx.Client(transport=transport),
    )


class TestWeatherApiClient:
    """WeatherApiClient 테스트"""

    def test_parses_current_weather(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=SAMPLE_RESPONSE)

        weather = make_client(handler).get_current_weather("Kyiv")

        assert weather.city == "Kyiv"
        assert weather.country == "Ukraine"
        assert weather.temperature_celsius == 21.0
        assert weather.temperature_fahrenheit == 69.8
        assert weather.humidity == 48
        assert weather.description == "Sunny"
        assert requests[0].url.path == "/v1/current.json"
        assert requests[0].url.params["q"] == "Kyiv"
        assert requests[0].url.params["key"] == "test-key"

    def test_bad_request_is_invalid_city(self):
        client = make_client(lambda r: httpx.Response(400, json={"error": {"message": "No matching location found."}}))
        with pytest.raises(InvalidCity):
            client.get_current_weather("Atlantis")

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure(self, status):
        client = make_client(lambda r: httpx.Response(status, json={"error": {"message": "API key is invalid."}}))
        with pytest.raises(WeatherApiUnauthorized):
            client.get_current_weather("Kyiv")

    def test_upstream_error_message(self):
        client = make_client(lambda r: httpx.Response(500, json={"error": {"message": "Internal application error."}}))
        with pytest.raises(WeatherLookupError, match="Internal application error"):
            client.get_current_weather("Kyiv")

    def test_timeout_is_lookup_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(WeatherLookupError):
            make_client(handler).get_current_weather("Kyiv")

    def test_malformed_response(self):
        client = make_client(lambda r: httpx.Response(200, json={"location": {"name": "Kyiv"}}))
        with pytest.raises(WeatherLookupError):
            client.get_current_weather("Kyiv")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
