# gym_booking/payments.py
"""Payment gateway capability used by the booking service."""
import abc
import logging
import random
from typing import Optional

from gym_booking.schemas import PaymentDetails

logger = logging.getLogger(__name__)


class PaymentGateway(abc.ABC):
    @abc.abstractmethod
    def charge(self, details: PaymentDetails) -> bool:
        """Return True when the charge went through, False when it was declined."""


class SimulatedGateway(PaymentGateway):
    """Stand-in gateway that approves a fixed share of charges."""

    def __init__(self, success_rate: float = 0.9, rng: Optional[random.Random] = None):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    def charge(self, details: PaymentDetails) -> bool:
        approved = self.rng.random() < self.success_rate
        logger.debug("Simulated charge for card ending %s: %s", details.last4, approved)
        return approved


class FixedOutcomeGateway(PaymentGateway):
    """Deterministic gateway; records every charge it sees."""

    def __init__(self, outcome: bool = True):
        self.outcome = outcome
        self.charges = []

    def charge(self, details: PaymentDetails) -> bool:
        self.charges.append(details)
        return self.outcome
