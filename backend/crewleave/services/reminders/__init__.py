from crewleave.services.reminders.balance import run_balance_reminders, send_balance_reminder

__all__ = ["run_balance_reminders", "send_balance_reminder"]
