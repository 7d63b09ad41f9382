"""
WeatherPulse - 도시별 날씨 이메일 구독 서비스
"""

__version__ = "1.0.0"
