from .gmail_sender import GmailSender, SendResult

__all__ = ["GmailSender", "SendResult"]
