import asyncio
from contextlib import contextmanager


def _runningLoop():
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class CycleClock:

    """A CycleClock hands out cycle indices, used to group changes that
    happened "at the same time" into one undo item.

    Several changes done in sequence by one routine (setting a few fields,
    inserting a few records in a loop) should be undone together. Timestamps
    can't tell them apart from separate user actions: a slow routine produces
    many different timestamps. Instead, all calls to current() that happen
    during one synchronous run of code get the same index. The cycle is closed
    by a callback that is scheduled to run once the current run returns to
    the scheduler.

        >>> pending = []
        >>> clock = CycleClock(scheduler=pending.append)
        >>> clock.current()
        0
        >>> clock.current()
        0
        >>> pending.pop()()  # the scheduler gets control back
        >>> clock.current()
        1

    Without a `scheduler` argument, the running asyncio event loop is used,
    via loop.call_soon(). When there is no running loop there is no turn to
    wait for, and every call to current() opens a new cycle, unless it is done
    inside a `with clock.cycle():` block.
    """

    def __init__(self, scheduler=None):
        self._scheduler = scheduler
        self._cycleIndex = -1
        self._cycleIsOpen = False
        self._closePending = False
        self._cycleLoop = None
        self._explicitDepth = 0

    def current(self):
        """Return the index of the current cycle, opening a new cycle if
        none is open.
        """
        if self._cycleIsOpen and self._cycleLoop is not None \
                and self._cycleLoop is not _runningLoop():
            # the loop the cycle was opened on went away before our callback ran
            self._cycleIsOpen = self._closePending = False
            self._cycleLoop = None
        if not self._cycleIsOpen:
            self._cycleIndex += 1
            self._cycleIsOpen = self._explicitDepth > 0 or self._scheduleClose()
        return self._cycleIndex

    def isOpen(self):
        return self._cycleIsOpen

    @contextmanager
    def cycle(self):
        """Returns a context manager that keeps a single cycle open for the
        duration of the with-block. All changes recorded within the block are
        undone and redone together.
        """
        self._explicitDepth += 1
        try:
            yield
        finally:
            self._explicitDepth -= 1
            if not self._explicitDepth and not self._closePending:
                self._cycleIsOpen = False

    def _scheduleClose(self):
        if self._scheduler is not None:
            self._scheduler(self._closeCycle)
        else:
            loop = _runningLoop()
            if loop is None:
                return False
            self._cycleLoop = loop
            loop.call_soon(self._closeCycle)
        self._closePending = True
        return True

    def _closeCycle(self):
        self._closePending = False
        self._cycleLoop = None
        if not self._explicitDepth:
            self._cycleIsOpen = False


# The default clock, shared by all undo stacks that don't get their own, so
# that stacks merged from different managers agree on cycle indices.
cycleClock = CycleClock()
