from prometheus_client import Counter


reminder_sweeps_total = Counter(
    "clinic_reminder_sweeps_total",
    "Total sweep cycles run",
    ["sweep"],
)

reminders_sent_total = Counter(
    "clinic_reminders_sent_total",
    "Total appointment reminders delivered",
    ["trigger"],
)

reminders_dispatch_failed_total = Counter(
    "clinic_reminders_dispatch_failed_total",
    "Total reminder deliveries that failed",
)

reminders_pruned_total = Counter(
    "clinic_reminders_pruned_total",
    "Total sent reminder records pruned by cleanup",
)

appointments_no_show_total = Counter(
    "clinic_appointments_no_show_total",
    "Total appointments expired to no-show by cleanup",
)
