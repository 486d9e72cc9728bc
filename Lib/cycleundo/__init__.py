"""# cycleundo

A general purpose library to add undo and redo to observable model objects.

The model objects don't need to know anything about undo: an undo manager
subscribes to the change events of the objects registered with it, and
records each change as an action on its undo stack. How a change is recorded,
and how it is undone and redone, is determined per event type by a set of
pluggable undo types.

Changes that happen "at the same time" are grouped, and undone and redone
together. Rather than looking at timestamps, the undo manager considers all
changes that happen within one synchronous run of code, before control goes
back to the event loop, to be one cycle. Outside an event loop, a cycle can
be delimited explicitly with `um.cycle()`. Here is an example:

    >>> from cycleundo.observable import Collection, Record
    >>> todos = Collection()
    >>> um = UndoManager(register=[todos], track=True)
    >>> with um.cycle():
    ...     todos.insert(Record(title="buy milk"))
    ...     todos.insert(Record(title="walk the dog"))
    ...
    >>> todos[1].set(title="walk the cat")
    >>> um.undo()
    >>> todos[1].get("title")
    'walk the dog'
    >>> um.undo()
    >>> len(todos)
    0
    >>> um.redo()
    >>> len(todos)
    2

The built-in undo types handle the "insert", "remove" and "reset" events of
collections and the "fieldChange" event of records, as implemented by the
Collection and Record classes. Other objects can take part by implementing
the Observable interface (an on() and an off() method) and by registering
undo types for their events, with `um.addUndoType()` for a single manager or
`UndoManager.addGlobalUndoType()` for all of them.

Several undo managers, each with its own undo types, can share a single
history: `um.merge(mainUndoManager)` makes `um` record its changes on the
stack of `mainUndoManager`.
"""

from .cycleClock import CycleClock
from .undoManager import Action, UndoManager, UndoManagerError
from .undoTypes import UndoType

__all__ = ["Action", "CycleClock", "UndoManager", "UndoManagerError", "UndoType"]

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "<unknown>"
