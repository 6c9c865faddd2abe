import pytest


class FakeTimer:
    """
    Stand-in for a Tk widget's after/after_cancel, driven by advance(ms).
    Records every callback it was handed so tests can fire stale ones.
    """

    def __init__(self):
        self.now = 0
        self.pending = {}
        self.armed = []
        self.cancelled = []
        self.max_live = 0
        self._counter = 0

    def after(self, ms, func):
        self._counter += 1
        handle = f"after#{self._counter}"
        self.pending[handle] = (self.now + ms, self._counter, func)
        self.armed.append((handle, ms, func))
        self.max_live = max(self.max_live, len(self.pending))
        return handle

    def after_cancel(self, handle):
        self.pending.pop(handle, None)
        self.cancelled.append(handle)

    @property
    def live(self):
        return len(self.pending)

    def advance(self, ms):
        target = self.now + ms
        while self.pending:
            handle, (due, _, func) = min(self.pending.items(), key=lambda item: item[1][:2])
            if due > target:
                break
            del self.pending[handle]
            self.now = due
            func()
        self.now = target


@pytest.fixture
def timer():
    return FakeTimer()
