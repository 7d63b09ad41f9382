from .email_notifier import EmailNotifier, Notifier

__all__ = ["EmailNotifier", "Notifier"]
