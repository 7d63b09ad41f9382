from .jobs import SubscriptionJobScheduler

__all__ = ["SubscriptionJobScheduler"]
