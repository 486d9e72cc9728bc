"""Observable model objects.

An UndoManager learns about changes by subscribing to the wildcard "all"
event of the objects registered with it. Anything that implements the
Observable interface (an on() and an off() method) can be registered.

Record and Collection are simple model classes the built-in undo types know
how to handle.
"""

from abc import ABCMeta, abstractmethod
from itertools import count


class Observable(metaclass=ABCMeta):

    """The capability an object needs to be registered with an UndoManager:
    subscribing and unsubscribing a callback to a named event. Callbacks
    subscribed to the "all" event must be called for every event, with the
    event name as the first argument, followed by the event's arguments.

    Any class implementing on() and off() is considered a virtual subclass:

        >>> class Foo:
        ...     def on(self, eventName, callback): pass
        ...     def off(self, eventName, callback): pass
        ...
        >>> isinstance(Foo(), Observable)
        True
    """

    __slots__ = ()

    @abstractmethod
    def on(self, eventName, callback):
        pass

    @abstractmethod
    def off(self, eventName, callback):
        pass

    @classmethod
    def __subclasshook__(cls, C):
        if cls is Observable:
            if all(callable(getattr(C, name, None)) for name in ("on", "off")):
                return True
        return NotImplemented


class EventEmitter(Observable):

    def __init__(self):
        self._callbacks = {}

    def on(self, eventName, callback):
        self._callbacks.setdefault(eventName, []).append(callback)

    def off(self, eventName, callback=None):
        """Unsubscribe `callback` from `eventName`, or all callbacks for
        `eventName` if `callback` is None. Callbacks are compared by equality,
        so a bound method can be unsubscribed with a fresh bound method.
        """
        if callback is None:
            self._callbacks.pop(eventName, None)
            return
        callbacks = self._callbacks.get(eventName, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def trigger(self, eventName, *args):
        # iterate over copies: callbacks may (un)subscribe
        for callback in list(self._callbacks.get(eventName, ())):
            callback(*args)
        if eventName != "all":
            for callback in list(self._callbacks.get("all", ())):
                callback(eventName, *args)


_cidCounter = count(1)


def _uniqueId(prefix):
    return f"{prefix}{next(_cidCounter)}"


class Record(EventEmitter):

    """A bag of named fields. Changing fields triggers a "fieldChange" event
    with the record as argument; previousAttributes() and changedKeys() then
    describe the most recent change.

    Every record has a unique `cid`, which UndoManager uses to identify it.
    """

    def __init__(self, **attributes):
        super().__init__()
        self.cid = _uniqueId("r")
        self._attributes = dict(attributes)
        self._previousAttributes = dict(attributes)
        self._changedKeys = ()

    def __repr__(self):
        attrsRepr = ", ".join(f"{k}={v!r}" for k, v in self._attributes.items())
        return f"{self.__class__.__name__}({attrsRepr})"

    def get(self, key, default=None):
        return self._attributes.get(key, default)

    def has(self, key):
        return key in self._attributes

    def toDict(self):
        return dict(self._attributes)

    def set(self, attributes=None, **kwargs):
        """Set one or more fields, either from a mapping, from keyword
        arguments, or both.
        """
        changes = dict(attributes or {})
        changes.update(kwargs)
        self._applyChanges(changes, ())

    def unset(self, *keys):
        self._applyChanges({}, keys)

    def previousAttributes(self):
        """Return a copy of the fields as they were before the most recent
        change.
        """
        return dict(self._previousAttributes)

    def changedKeys(self):
        """Return the names of the fields that were added, modified or
        removed by the most recent change.
        """
        return self._changedKeys

    def _applyChanges(self, changes, removals):
        previous = self._attributes
        changedKeys = [k for k, v in changes.items() if k not in previous or previous[k] != v]
        changedKeys += [k for k in removals if k in previous and k not in changes]
        if not changedKeys:
            return
        attributes = dict(previous)
        for key in removals:
            attributes.pop(key, None)
        attributes.update(changes)
        self._previousAttributes = previous
        self._attributes = attributes
        self._changedKeys = tuple(changedKeys)
        self.trigger("fieldChange", self)


class Collection(EventEmitter):

    """An ordered collection of records.

    insert() and remove() trigger "insert" and "remove" events, with the
    record, the collection and an options dict containing the index of the
    record as arguments. reset() replaces all records at once and triggers a
    "reset" event with the collection and an options dict containing the
    previous records.
    """

    def __init__(self, records=()):
        super().__init__()
        self.cid = _uniqueId("c")
        self._records = list(records)

    def __repr__(self):
        return f"{self.__class__.__name__}({self._records})"

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def __contains__(self, record):
        return record in self._records

    def indexOf(self, record):
        if record not in self._records:
            return -1
        return self._records.index(record)

    def insert(self, record, index=None):
        """Insert a record at `index`, or append it if `index` is None or
        beyond the end. Inserting a record that is already part of the
        collection does nothing.
        """
        if record in self._records:
            return
        numRecords = len(self._records)
        if index is None or index > numRecords:
            index = numRecords
        elif index < 0:
            index = max(0, index + numRecords)
        self._records.insert(index, record)
        self.trigger("insert", record, self, {"index": index})

    def append(self, record):
        self.insert(record)

    def remove(self, record):
        if record not in self._records:
            return
        index = self._records.index(record)
        del self._records[index]
        self.trigger("remove", record, self, {"index": index})

    def reset(self, records=()):
        previousRecords = self._records
        self._records = list(records)
        self.trigger("reset", self, {"previousRecords": previousRecords})
