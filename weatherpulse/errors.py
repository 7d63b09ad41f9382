"""
WeatherPulse 예외 정의

모든 도메인 예외는 WeatherPulseError 를 상속하며,
웹 계층은 status_code 를 그대로 HTTP 응답 코드로 사용한다.
"""

from typing import Optional


class WeatherPulseError(Exception):
    """기본 예외"""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# 구독 상태 관련
class InvalidFrequency(WeatherPulseError):
    status_code = 400
    default_message = "Invalid frequency. Must be 'hourly' or 'daily'"


class InvalidToken(WeatherPulseError):
    status_code = 400
    default_message = "Invalid token"


class ExpiredToken(WeatherPulseError):
    status_code = 400
    default_message = "Token has expired"


class SubscriptionNotFound(WeatherPulseError):
    status_code = 404
    default_message = "Subscription not found"


class SubscriptionAlreadyExists(WeatherPulseError):
    status_code = 409
    default_message = "Email already subscribed for this city"


class InvalidSubscriptionState(WeatherPulseError):
    status_code = 409
    default_message = "Subscription is not in a valid state for this operation"


# 날씨 API 관련
class WeatherLookupError(WeatherPulseError):
    status_code = 502
    default_message = "Failed to fetch weather data"


class InvalidCity(WeatherLookupError):
    status_code = 400
    default_message = "Invalid city name provided"

    def __init__(self, city: Optional[str] = None):
        message = f"{self.default_message}: {city}" if city else None
        super().__init__(message)
        self.city = city


class WeatherApiUnauthorized(WeatherLookupError):
    status_code = 502
    default_message = "Invalid or unauthorized API key"


# 데이터베이스
class DatabaseError(WeatherPulseError):
    status_code = 500
    default_message = "Database query failed"
