"""
구독 알림 이메일 서비스 - 확인, 환영, 날씨 업데이트, 해지 안내 발송
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import settings
from ..mailer import GmailSender

logger = logging.getLogger(__name__)


FREQUENCY_LABELS = {
    "hourly": "매시간",
    "daily": "매일",
}


class Notifier(ABC):
    """
    구독자 알림 인터페이스

    모든 메서드는 실패를 내부에서 로깅하고 성공 여부만 반환한다.
    호출자에게 예외를 던지지 않는다.
    """

    @abstractmethod
    def send_confirmation(self, email: str, token: str, city: str, frequency: str) -> bool:
        """구독 확인 메일"""

    @abstractmethod
    def send_welcome(
        self,
        email: str,
        token: str,
        city: str,
        frequency: str,
        weather_description: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> bool:
        """구독 확인 완료 환영 메일 (날씨 정보는 선택)"""

    @abstractmethod
    def send_weather_update(
        self,
        email: str,
        token: str,
        city: str,
        frequency: str,
        weather_description: str,
        temperature: float,
    ) -> bool:
        """정기 날씨 업데이트 메일"""

    @abstractmethod
    def send_unsubscribe_confirmation(self, email: str, city: str) -> bool:
        """구독 해지 안내 메일"""


class EmailNotifier(Notifier):
    """Jinja2 템플릿 + Gmail SMTP 기반 알림 서비스"""

    def __init__(
        self,
        sender: GmailSender = None,
        base_url: str = None,
        template_dir: str = None
    ):
        self.sender = sender or GmailSender()
        self.base_url = (base_url or settings.base_url).rstrip("/")

        if template_dir is None:
            template_dir = Path(__file__).parent.parent / "templates"

        self.template_dir = Path(template_dir)

        # Jinja2 환경 설정
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def confirm_url(self, token: str) -> str:
        return f"{self.base_url}/api/v1/confirm/{token}"

    def unsubscribe_url(self, token: str) -> str:
        return f"{self.base_url}/api/v1/unsubscribe/{token}"

    def send_confirmation(self, email: str, token: str, city: str, frequency: str) -> bool:
        context = {
            "city": city,
            "frequency": FREQUENCY_LABELS.get(frequency, frequency),
            "confirm_url": self.confirm_url(token),
            "unsubscribe_url": self.unsubscribe_url(token),
        }
        subject = f"[WeatherPulse] {city} 날씨 구독을 확인해 주세요"
        return self._deliver("confirmation", email, subject, "confirmation.html", context)

    def send_welcome(
        self,
        email: str,
        token: str,
        city: str,
        frequency: str,
        weather_description: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> bool:
        context = {
            "city": city,
            "frequency": FREQUENCY_LABELS.get(frequency, frequency),
            "weather_description": weather_description,
            "temperature": temperature,
            "unsubscribe_url": self.unsubscribe_url(token),
        }
        subject = f"[WeatherPulse] {city} 날씨 구독이 시작되었습니다"
        return self._deliver("welcome", email, subject, "welcome.html", context)

    def send_weather_update(
        self,
        email: str,
        token: str,
        city: str,
        frequency: str,
        weather_description: str,
        temperature: float,
    ) -> bool:
        now = datetime.now()
        context = {
            "city": city,
            "frequency": FREQUENCY_LABELS.get(frequency, frequency),
            "weather_description": weather_description,
            "temperature": temperature,
            "report_time": now,
            "unsubscribe_url": self.unsubscribe_url(token),
        }
        subject = f"[WeatherPulse] {now.strftime('%Y-%m-%d %H:%M')} {city} 날씨"
        return self._deliver("weather_update", email, subject, "weather_update.html", context)

    def send_unsubscribe_confirmation(self, email: str, city: str) -> bool:
        context = {"city": city, "subscribe_url": f"{self.base_url}/"}
        subject = f"[WeatherPulse] {city} 날씨 구독이 해지되었습니다"
        return self._deliver("unsubscribe", email, subject, "unsubscribed.html", context)

    def _deliver(
        self,
        kind: str,
        email: str,
        subject: str,
        template_name: str,
        context: dict
    ) -> bool:
        """렌더링 후 발송. 실패는 로깅만 한다."""
        try:
            html_content = self._render(template_name, subject, context)

            # SMTP 미설정 시 로그로 대체
            if not self.sender.is_configured:
                logger.info(f"[MOCK EMAIL] To: {email}, Subject: {subject}")
                for key in ("confirm_url", "unsubscribe_url"):
                    if key in context:
                        logger.info(f"[MOCK EMAIL] {key}: {context[key]}")
                return True

            result = self.sender.send(
                recipient=email,
                subject=subject,
                html_content=html_content
            )
            if not result.success:
                logger.error(f"{kind} 메일 발송 실패 ({email}): {result.error_message}")
            return result.success

        except Exception as e:
            logger.exception(f"{kind} 메일 처리 중 오류 ({email}): {e}")
            return False

    def _render(self, template_name: str, subject: str, context: dict) -> str:
        """템플릿 HTML 생성"""
        try:
            template = self._env.get_template(template_name)
            return template.render(generated_at=datetime.now(), **context)
        except Exception as e:
            logger.error(f"템플릿 렌더링 실패 ({template_name}): {e}")
            # 폴백 HTML
            return self._fallback_html(subject, context)

    @staticmethod
    def _fallback_html(subject: str, context: dict) -> str:
        """폴백 HTML"""
        lines = [f"<h2>{subject}</h2>"]

        if context.get("weather_description"):
            lines.append(
                f"<p>현재 날씨: {context['weather_description']}, {context.get('temperature')}°C</p>"
            )
        if context.get("confirm_url"):
            lines.append(f'<p><a href="{context["confirm_url"]}">구독 확인하기</a></p>')
        if context.get("unsubscribe_url"):
            lines.append(f'<p><a href="{context["unsubscribe_url"]}">구독 해지</a></p>')

        body = "\n".join(lines)
        return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    {body}
    <p style="color: #888; font-size: 12px;">이 메일은 WeatherPulse 시스템에서 자동 발송되었습니다.</p>
</body>
</html>
"""
