# gym_booking/services/availability.py
from typing import List, Optional

from gym_booking.entities import TimeSlot
from gym_booking.exceptions import UnknownTrainer
from gym_booking.store import GymStore


def _slot_order(slot: TimeSlot):
    return (slot.day.index, slot.start_time, slot.trainer_id)


class AvailabilityService:
    """Read-only views over time slots, recomputed from the store on every call."""

    def __init__(self, store: GymStore):
        self.store = store

    def available_slots(self, trainer_id: Optional[str] = None) -> List[TimeSlot]:
        with self.store.lock:
            slots = [
                s for s in self.store.time_slots.values()
                if not s.is_booked and (trainer_id is None or s.trainer_id == trainer_id)
            ]
        return sorted(slots, key=_slot_order)

    def trainer_schedule(self, trainer_id: str) -> List[TimeSlot]:
        with self.store.lock:
            if self.store.get_trainer(trainer_id) is None:
                raise UnknownTrainer(details={"trainer_id": trainer_id})
            slots = self.store.slots_for_trainer(trainer_id)
        return sorted(slots, key=_slot_order)
