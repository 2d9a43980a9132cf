from giftradar.reminders.schedule import advance_fire, compute_next_fire
from giftradar.reminders.scheduler import ReminderScheduler, ReminderState, ReminderStatus

__all__ = [
    "ReminderScheduler",
    "ReminderState",
    "ReminderStatus",
    "advance_fire",
    "compute_next_fire",
]
