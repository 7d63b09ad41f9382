from .weather_api import WeatherApiClient, WeatherData, WeatherLookup

__all__ = ["WeatherApiClient", "WeatherData", "WeatherLookup"]
