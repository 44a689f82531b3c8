# gym_booking/services/schedule_service.py
"""
Trainer availability windows.

A trainer publishes weekly time slots; slots of the same trainer on the same
day may never overlap, and a slot with an active booking cannot be removed.
"""

from datetime import time
from typing import Optional

from gym_booking.entities import TimeSlot, Weekday, new_id
from gym_booking.exceptions import (
    SlotInUse,
    TimeSlotConflict,
    TimeSlotNotFound,
    UnknownTrainer,
    ValidationFailed,
)
from gym_booking.services.base import BaseService
from gym_booking.sync import deleted, inserted


def slots_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """True when a boundary of one window falls inside the other, or one contains the other."""
    return (
        (b_start <= a_start < b_end)
        or (b_start < a_end <= b_end)
        or (a_start <= b_start and a_end >= b_end)
    )


class ScheduleService(BaseService):
    def find_conflict(self, trainer_id: str, day: Weekday, start: time, end: time) -> Optional[TimeSlot]:
        for slot in self.store.slots_for_trainer(trainer_id, day):
            if slots_overlap(start, end, slot.start_time, slot.end_time):
                return slot
        return None

    def add_time_slot(self, trainer_id: str, day: Weekday, start: time, end: time) -> TimeSlot:
        day = Weekday(day)
        start, end = start.replace(second=0, microsecond=0), end.replace(second=0, microsecond=0)
        if start >= end:
            raise ValidationFailed(
                "Start time must be before end time",
                details={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )

        with self.store.lock:
            trainer = self.store.get_trainer(trainer_id)
            if trainer is None:
                raise UnknownTrainer(details={"trainer_id": trainer_id})

            clash = self.find_conflict(trainer_id, day, start, end)
            if clash is not None and not clash.is_booked and (clash.start_time, clash.end_time) == (start, end):
                # Re-publishing a free window hands back the slot already there
                self.logger.info("Slot %s already published for trainer %s", clash.id, trainer_id)
                return clash
            if clash is not None:
                self.logger.warning(
                    "Rejected slot %s %s-%s for trainer %s: overlaps %s",
                    day.value, start, end, trainer_id, clash.id,
                )
                raise TimeSlotConflict(details={"conflicting_slot_id": clash.id})

            slot = TimeSlot(
                id=new_id("slot"),
                trainer_id=trainer_id,
                day=day,
                start_time=start,
                end_time=end,
            )
            self.store.add_slot(slot)
            self.log_operation("add_time_slot", slot_id=slot.id, trainer_id=trainer_id, day=day.value)
            self._persist("add_time_slot", [inserted("time_slots", slot)])
        return slot

    def get_slot(self, time_slot_id: str) -> Optional[TimeSlot]:
        with self.store.lock:
            return self.store.get_slot(time_slot_id)

    def remove_time_slot(self, time_slot_id: str) -> None:
        with self.store.lock:
            slot = self.store.get_slot(time_slot_id)
            if slot is None:
                raise TimeSlotNotFound(details={"time_slot_id": time_slot_id})

            if slot.is_booked:
                booking = self.store.active_booking_for_slot(time_slot_id)
                if booking is not None:
                    raise SlotInUse(details={"time_slot_id": time_slot_id, "booking_id": booking.id})

            self.store.remove_slot(time_slot_id)
            self.log_operation("remove_time_slot", slot_id=time_slot_id, trainer_id=slot.trainer_id)
            self._persist("remove_time_slot", [deleted("time_slots", time_slot_id)])
