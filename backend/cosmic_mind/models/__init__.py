from .user import User
from .reminder import Reminder, ReminderRecord, Recurrence
from .content import Content
from .share_link import ShareLink
