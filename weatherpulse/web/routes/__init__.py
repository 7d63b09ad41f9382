from .subscription import router as subscription_router
from .weather import router as weather_router
from .jobs import router as jobs_router
from .api import router as api_router

__all__ = ["subscription_router", "weather_router", "jobs_router", "api_router"]
