"""Reminder delivery for booked appointments.

Two periodic sweeps run against the appointment store: one dispatches due
reminder emails, the other prunes old sent reminders and expires stale
bookings to no-show. They are driven in-process by ``ReminderScheduler`` or,
in a separate worker, by the Celery beat schedule in ``celery_app``.
"""
