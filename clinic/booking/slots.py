from typing import Iterable, Iterator, List

from clinic.booking.policy import BookingPolicy


def iter_slot_template(policy: BookingPolicy) -> Iterator[str]:
    """Yield every bookable start time of a business day, ascending."""
    minute = policy.business_start_hour * 60
    end = policy.business_end_hour * 60
    while minute < end:
        yield f"{minute // 60:02d}:{minute % 60:02d}"
        minute += policy.slot_stride_minutes


def available_slots(booked_times: Iterable[str], policy: BookingPolicy) -> List[str]:
    """
    Start times still free on a day.

    ``booked_times`` are the times of that day's active appointments; callers
    must not pass cancelled or otherwise terminal bookings.
    """
    taken = set(booked_times)
    return [slot for slot in iter_slot_template(policy) if slot not in taken]
