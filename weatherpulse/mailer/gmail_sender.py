"""
Gmail SMTP 이메일 발송 모듈
"""

import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.header import Header
from dataclasses import dataclass
from typing import Optional

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """발송 결과"""
    recipient: str
    success: bool
    error_message: Optional[str] = None


class GmailSender:
    """Gmail SMTP 이메일 발송기"""

    SMTP_SERVER = "smtp.gmail.com"
    SMTP_PORT = 587

    def __init__(
        self,
        sender_email: str = None,
        app_password: str = None,
        sender_name: str = None,
        timeout: float = None
    ):
        """
        Args:
            sender_email: 발신자 이메일 (Gmail 주소)
            app_password: Gmail 앱 비밀번호
            sender_name: 발신자 표시 이름
            timeout: SMTP 연결/송신 타임아웃 (초)

        Note:
            Gmail 앱 비밀번호는 Google 계정 설정에서 생성해야 합니다.
            https://myaccount.google.com/apppasswords
        """
        self.sender_email = sender_email or settings.gmail_address
        self.app_password = app_password or settings.gmail_app_password
        self.sender_name = sender_name or settings.email_from_name
        self.timeout = timeout or settings.http_timeout_seconds

        if not self.sender_email or not self.app_password:
            logger.warning(
                "Gmail 설정이 완료되지 않았습니다. "
                ".env 파일에 GMAIL_ADDRESS와 GMAIL_APP_PASSWORD를 설정하세요."
            )

    @property
    def is_configured(self) -> bool:
        """Gmail 설정 완료 여부"""
        return bool(self.sender_email and self.app_password)

    def send(
        self,
        recipient: str,
        subject: str,
        html_content: str
    ) -> SendResult:
        """
        이메일 발송

        Args:
            recipient: 수신자 이메일
            subject: 제목
            html_content: HTML 본문

        Returns:
            SendResult 객체 (예외를 던지지 않음)
        """
        if not self.is_configured:
            return SendResult(
                recipient=recipient,
                success=False,
                error_message="Gmail 설정이 완료되지 않았습니다."
            )

        try:
            # 이메일 메시지 구성
            message = MIMEMultipart("alternative")
            message["Subject"] = Header(subject, "utf-8")
            message["From"] = f"{self.sender_name} <{self.sender_email}>"
            message["To"] = recipient

            # HTML 본문 추가
            html_part = MIMEText(html_content, "html", "utf-8")
            message.attach(html_part)

            # SMTP 연결 및 발송
            with smtplib.SMTP(self.SMTP_SERVER, self.SMTP_PORT, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.sender_email, self.app_password)
                server.sendmail(
                    self.sender_email,
                    recipient,
                    message.as_string()
                )

            logger.info(f"이메일 발송 성공: {recipient}")
            return SendResult(recipient=recipient, success=True)

        except smtplib.SMTPAuthenticationError:
            error_msg = "Gmail 인증 실패. 앱 비밀번호를 확인하세요."
            logger.error(f"이메일 발송 실패: {error_msg}")
            return SendResult(recipient=recipient, success=False, error_message=error_msg)

        except smtplib.SMTPRecipientsRefused:
            error_msg = f"수신자 거부: {recipient}"
            logger.error(f"이메일 발송 실패: {error_msg}")
            return SendResult(recipient=recipient, success=False, error_message=error_msg)

        except Exception as e:
            # 타임아웃(socket.timeout)도 여기서 실패로 처리
            error_msg = str(e) or e.__class__.__name__
            logger.error(f"이메일 발송 실패: {error_msg}")
            return SendResult(recipient=recipient, success=False, error_message=error_msg)
