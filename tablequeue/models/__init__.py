from tablequeue.models.restaurant import Restaurant
from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.models.analytics import DailyAnalytics, HourlyAnalytics, TableAnalytics

__all__ = [
    "Restaurant",
    "TableType",
    "WaitlistEntry",
    "DailyAnalytics",
    "HourlyAnalytics",
    "TableAnalytics",
]
