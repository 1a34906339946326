from .base import DataClient, DataServiceError, Subscription
from .auth import AuthProvider, SIGNED_IN, SIGNED_OUT, USER_UPDATED
from .store import DataStore, TRACKED_TABLES
from .notifications import LowStockNotifier, Notification
from .session import DashboardSession
from .http import HttpClient, iter_sse_events
from .local import LocalClient
