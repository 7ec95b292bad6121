"""Schedule Buddy - Desktop Schedule Reminder Application.

This package registers timed schedules and reminds the user shortly before
each one starts, using the MVP (Model-View-Presenter) architecture pattern.
"""

__version__ = "0.1.0"
__author__ = "Schedule Buddy Team"
__description__ = "Desktop schedule reminders with pre-event and repeat notifications"
