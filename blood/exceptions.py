class BloodServiceError(Exception):
    """
    Expected, user-facing outcome of an engine operation.
    Callers render `message`; payload lives on subclass attributes.
    """
    default_message = "The operation could not be completed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(BloodServiceError):
    default_message = "Not found."


class ForbiddenError(BloodServiceError):
    default_message = "Access denied."


class InvalidTransitionError(BloodServiceError):
    default_message = "This status change is not allowed."


class InvalidStateError(InvalidTransitionError):
    default_message = "The donation is not in a state that allows this action."


class CooldownActiveError(BloodServiceError):
    def __init__(self, days_remaining, cooldown_days=56):
        self.days_remaining = days_remaining
        self.cooldown_days = cooldown_days
        super().__init__(
            f"You cannot donate within {cooldown_days} days of your last donation. "
            f"You need to wait {days_remaining} more days."
        )


class WindowNotYetOpenError(BloodServiceError):
    def __init__(self, hours_until):
        self.hours_until = hours_until
        super().__init__(
            "Cannot mark as completed yet. You can mark the donor present from 1 hour "
            f"before the appointment. Appointment is in {hours_until} hours."
        )


class WindowClosedError(BloodServiceError):
    def __init__(self, days_past):
        self.days_past = days_past
        super().__init__(
            "Cannot mark as completed. The time window has passed. "
            f"It has been {days_past} days since the deadline."
        )


class InsufficientInventoryError(BloodServiceError):
    def __init__(self, available, required):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient inventory. Available: {available} units, Required: {required} units."
        )


class DuplicatePendingError(BloodServiceError):
    default_message = "You already have a pending reschedule request for this donation."


class TooLateError(BloodServiceError):
    def __init__(self, hours_until, cutoff_hours=24):
        self.hours_until = hours_until
        self.cutoff_hours = cutoff_hours
        super().__init__(
            f"Cannot reschedule within {cutoff_hours} hours of the appointment. "
            "Please contact the organization directly."
        )


class MismatchError(BloodServiceError):
    default_message = "Donation is not linked to this request."


class BloodGroupMismatchError(MismatchError):
    def __init__(self, required, actual):
        self.required = required
        self.actual = actual
        super().__init__(
            f"Blood group mismatch. Request requires {required}, but you have {actual or 'no blood group set'}."
        )


class AlreadyInterestedError(BloodServiceError):
    default_message = "You have already expressed interest in this request."
