from django.utils import timezone


class SystemClock:
    def now(self):
        return timezone.now()


class FixedClock:
    """Clock pinned to one instant; advance() moves it forward."""

    def __init__(self, at):
        if timezone.is_naive(at):
            at = timezone.make_aware(at, timezone.get_current_timezone())
        self._at = at

    def now(self):
        return self._at

    def advance(self, delta):
        self._at = self._at + delta
        return self._at


_default = SystemClock()


def get_clock(clock=None):
    return clock or _default
