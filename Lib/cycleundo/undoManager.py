from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import typing
import weakref

from .cycleClock import cycleClock as defaultCycleClock
from .observable import EventEmitter, Observable
from .undoTypes import UndoTypeRegistry, defaultUndoTypes


logger = logging.getLogger(__name__)


class UndoManagerError(Exception):
    pass


class _StrongRef:

    # Stand-in for weakref.ref, for objects that don't support weak references.

    __slots__ = ["_obj"]

    def __init__(self, obj):
        self._obj = obj

    def __call__(self):
        return self._obj


def objectRef(obj, callback=None):
    """Return a weak reference to `obj`, or a callable with the same interface
    holding a strong reference if `obj` can't be weakly referenced.
    """
    try:
        return weakref.ref(obj, callback)
    except TypeError:
        return _StrongRef(obj)


# Action

@dataclass(frozen=True)
class Action:

    """An Action records a single change to an observed object:

    - type: the event name of the change, for example "insert" or "fieldChange"
    - object: the changed object (held by weak reference, see below)
    - before: the state before the change, as returned by the capture handler
    - after: the state after the change, as returned by the capture handler
    - cycleIndex: the cycle in which the change happened; all actions from the
      same cycle are undone and redone together
    - info: any additional items returned by the capture handler
    - undoTypes: the registry the action was recorded with, which also
      provides the undo and redo handlers

    The Action does not keep its object alive. If the object is gone, undoing
    or redoing the action does nothing.
    """

    type: str
    objectRef: typing.Callable = field(repr=False)
    before: typing.Any
    after: typing.Any
    cycleIndex: int
    info: dict = field(default_factory=dict)
    undoTypes: UndoTypeRegistry = field(default=None, repr=False, compare=False)

    @property
    def object(self):
        return self.objectRef()

    def undo(self):
        self._perform("undo")

    def redo(self):
        self._perform("redo")

    def _perform(self, which):
        undoType = self.undoTypes.resolve(self.type) if self.undoTypes is not None else None
        if undoType is None:
            logger.debug("can't %s %r action: unknown undo type", which, self.type)
            return
        obj = self.object
        if obj is None:
            logger.debug("can't %s %r action: object no longer exists", which, self.type)
            return
        getattr(undoType, which)(obj, self.before, self.after, self)


# Object registry

def _registryKey(obj):
    cid = getattr(obj, "cid", None)
    if cid is not None:
        return ("cid", cid)
    return ("id", id(obj))


class ObjectRegistry:

    """Keeps track of the objects an undo manager listens to, so that a
    listener is never bound twice to the same object.

    Objects with a `cid` attribute are identified by it, others by identity.
    The registry does not keep its objects alive.
    """

    def __init__(self):
        self._objectRefs = {}

    def __len__(self):
        return len(self.get())

    def __contains__(self, obj):
        return self.isRegistered(obj)

    def isRegistered(self, obj):
        ref = self._objectRefs.get(_registryKey(obj))
        return ref is not None and ref() is obj

    def register(self, obj):
        if self.isRegistered(obj):
            return
        key = _registryKey(obj)
        self._objectRefs[key] = objectRef(obj, lambda ref: self._forget(key, ref))

    def unregister(self, obj):
        if self.isRegistered(obj):
            del self._objectRefs[_registryKey(obj)]

    def get(self):
        """Return a list of all registered objects that are still alive."""
        objects = (ref() for ref in self._objectRefs.values())
        return [obj for obj in objects if obj is not None]

    def _forget(self, key, ref):
        if self._objectRefs.get(key) is ref:
            del self._objectRefs[key]


# Undo stack

class UndoStack:

    """An UndoStack holds a list of actions and a pointer into that list.

    The pointer is the index of the most recently performed action; -1 means
    there is nothing to undo. Undo moves the pointer back, redo moves it
    forward, by a whole cycle of actions at a time. Recording a new action
    while the pointer isn't at the end of the list discards the actions after
    the pointer: they can no longer be redone.

    Actions are only recorded when `track` is True, and never while an undo
    or redo is being performed: replaying a change triggers the same events
    as the original change did.

    `objectRegistry` holds the objects any manager writing onto this stack
    listens to, so that managers sharing the stack never record a change
    twice.
    """

    def __init__(self, maxLength=None, cycleClock=None):
        self.actions = []
        self.pointer = -1
        self.track = False
        self.isCurrentlyUndoRedoing = False
        self.maxLength = None
        self.objectRegistry = ObjectRegistry()
        self.cycleClock = cycleClock if cycleClock is not None else defaultCycleClock
        self.setMaxLength(maxLength)

    def __len__(self):
        return len(self.actions)

    def __iter__(self):
        return iter(self.actions)

    def __repr__(self):
        return f"{self.__class__.__name__}(length={len(self.actions)}, pointer={self.pointer})"

    def setMaxLength(self, maxLength):
        """Set the maximum number of actions on the stack, or None for no
        limit. When the stack is too long, the oldest undoable actions are
        dropped first, and the newest redoable ones only when that is not
        enough.
        """
        if maxLength is not None and (not isinstance(maxLength, int) or isinstance(maxLength, bool)
                                      or maxLength < 1):
            raise UndoManagerError(f"maximum stack length must be a positive int or None, not {maxLength!r}")
        self.maxLength = maxLength
        self._trim()

    def addToStack(self, typeName, args, undoTypes):
        """Record an action for a change event, if the stack is tracking and
        the capture handler for `typeName` returns something usable.
        """
        if not self.track or self.isCurrentlyUndoRedoing:
            return
        undoType = undoTypes.resolve(typeName)
        if undoType is None:
            return
        result = undoType.capture(*args)
        if not result or not isinstance(result, Mapping) or \
                not all(key in result for key in ("object", "before", "after")):
            logger.debug("discarding %r change: capture handler returned %r", typeName, result)
            return
        info = {k: v for k, v in result.items() if k not in ("object", "before", "after")}
        action = Action(
            type=typeName,
            objectRef=objectRef(result["object"]),
            before=result["before"],
            after=result["after"],
            cycleIndex=self.cycleClock.current(),
            info=info,
            undoTypes=undoTypes,
        )
        # New actions always go at the end: anything beyond the pointer
        # was undone before, and can't be redone anymore.
        del self.actions[self.pointer + 1:]
        self.actions.append(action)
        self.pointer = len(self.actions) - 1
        self._trim()

    def undoActions(self):
        """Return the actions the next undo() will roll back, in the order in
        which they were recorded.
        """
        if self.pointer == -1:
            return []
        return self._cycleActions(self.actions[self.pointer].cycleIndex)

    def redoActions(self):
        """Return the actions the next redo() will perform, in the order in
        which they were recorded.
        """
        if self.pointer == len(self.actions) - 1:
            return []
        return self._cycleActions(self.actions[self.pointer + 1].cycleIndex)

    def undo(self):
        """Roll back the cycle of actions the pointer points at, newest
        action first. Returns the list of actions, which is empty if there
        was nothing to undo.
        """
        if self.isCurrentlyUndoRedoing:
            return []
        actions = self.undoActions()
        if not actions:
            return []
        self.pointer -= len(actions)
        with self._undoRedoing():
            for action in reversed(actions):
                action.undo()
        return actions

    def redo(self):
        """Perform the cycle of actions following the pointer again, oldest
        action first. Returns the list of actions, which is empty if there
        was nothing to redo.
        """
        if self.isCurrentlyUndoRedoing:
            return []
        actions = self.redoActions()
        if not actions:
            return []
        self.pointer += len(actions)
        with self._undoRedoing():
            for action in actions:
                action.redo()
        return actions

    def clear(self):
        self.actions = []
        self.pointer = -1

    def _cycleActions(self, cycleIndex):
        return [action for action in self.actions if action.cycleIndex == cycleIndex]

    @contextmanager
    def _undoRedoing(self):
        self.isCurrentlyUndoRedoing = True
        try:
            yield
        finally:
            self.isCurrentlyUndoRedoing = False

    def _trim(self):
        if self.maxLength is None:
            return
        numExcess = len(self.actions) - self.maxLength
        if numExcess <= 0:
            return
        # Drop the oldest performed actions first. Actions after the pointer
        # can still be redone, so they only go when nothing else is left, and
        # then from the far end of the redo branch.
        numPerformed = min(numExcess, self.pointer + 1)
        del self.actions[:numPerformed]
        self.pointer -= numPerformed
        del self.actions[self.maxLength:]


# Undo manager

class UndoManager(EventEmitter):

    """An UndoManager records the changes made to the objects registered with
    it, and can undo and redo them.

        >>> from cycleundo.observable import Collection, Record
        >>> todos = Collection()
        >>> um = UndoManager(register=[todos], track=True)
        >>> todos.insert(Record(title="write docs"))
        >>> len(todos)
        1
        >>> um.undo()
        >>> len(todos)
        0
        >>> um.redo()
        >>> todos[0].get("title")
        'write docs'

    Changes are only recorded while tracking is enabled, either by passing
    track=True, or by calling startTracking().

    All changes that happen within one synchronous run of code (for example
    during one step of an asyncio event loop, or within a `with um.cycle():`
    block) are undone and redone together. See CycleClock.

    Registered objects must be Observable: the manager subscribes to their
    "all" event. Which events are recorded, and how they are undone, is
    determined by the undo types: the manager's `undoTypes` registry falls
    back to the global default types. Use addUndoType() and friends to
    customize a single manager, and addGlobalUndoType() and friends to
    customize all managers.

    The manager triggers an "undo" or "redo" event with itself as argument,
    once for every call to undo() or redo().
    """

    def __init__(self, register=(), track=False, maxLength=None, cycleClock=None):
        super().__init__()
        self.stack = UndoStack(maxLength=maxLength, cycleClock=cycleClock)
        self.undoTypes = UndoTypeRegistry(defaultUndoTypes)
        self.objectRegistry = ObjectRegistry()
        if register:
            self.register(*register)
        if track:
            self.startTracking()

    @property
    def maxLength(self):
        return self.stack.maxLength

    @maxLength.setter
    def maxLength(self, maxLength):
        self.stack.setMaxLength(maxLength)

    def startTracking(self):
        self.stack.track = True

    def stopTracking(self):
        self.stack.track = False

    def isTracking(self):
        return self.stack.track

    def register(self, *objects):
        """Start listening to changes of one or more objects. Objects that are
        already registered, also those registered by another manager sharing
        the same stack, are skipped. So are objects that are not Observable,
        and undo managers: their "undo" and "redo" events are not changes.
        """
        for obj in objects:
            if obj is None or self.objectRegistry.isRegistered(obj) \
                    or self.stack.objectRegistry.isRegistered(obj):
                continue
            if isinstance(obj, UndoManager):
                logger.debug("not registering %r: undo managers are not tracked", obj)
                continue
            if not isinstance(obj, Observable):
                logger.debug("not registering %r: object is not observable", obj)
                continue
            self.objectRegistry.register(obj)
            self.stack.objectRegistry.register(obj)
            obj.on("all", self._onChange)

    def unregister(self, *objects):
        """Stop listening to changes of one or more objects. Actions recorded
        for these objects stay on the stack.
        """
        for obj in objects:
            if obj is None or not self.objectRegistry.isRegistered(obj):
                continue
            self.objectRegistry.unregister(obj)
            self.stack.objectRegistry.unregister(obj)
            obj.off("all", self._onChange)

    def _onChange(self, eventName, *args):
        self.stack.addToStack(eventName, args, self.undoTypes)

    def undo(self):
        """Undo the most recent cycle of changes. Does nothing if there is
        nothing to undo.
        """
        self.stack.undo()
        self.trigger("undo", self)

    def redo(self):
        """Redo the most recently undone cycle of changes. Does nothing if
        there is nothing to redo.
        """
        self.stack.redo()
        self.trigger("redo", self)

    def isAvailable(self, which):
        """Return True if undo() (`which` == "undo") or redo() (`which` ==
        "redo") would do something.
        """
        stack = self.stack
        if which == "undo":
            return bool(len(stack) and stack.pointer > -1)
        elif which == "redo":
            return bool(len(stack) and stack.pointer < len(stack) - 1)
        return False

    def undoActions(self):
        return self.stack.undoActions()

    def redoActions(self):
        return self.stack.redoActions()

    def clear(self):
        self.stack.clear()

    def cycle(self):
        """Returns a context manager that records all changes made within the
        with-block as a single cycle.
        """
        return self.stack.cycleClock.cycle()

    def merge(self, undoManager):
        """Make this manager record its changes on the stack of `undoManager`.

        This allows for a main undo manager, plus a few special ones with
        their own custom undo types for some objects, all sharing the same
        history. Merging first and registering objects afterwards is cheaper
        than the other way around.

        Objects that both managers registered stay with `undoManager`: a
        shared stack records every change once.
        """
        if not isinstance(undoManager, UndoManager):
            raise UndoManagerError(f"can't merge with {undoManager!r}: not an UndoManager")
        if undoManager.stack is self.stack:
            return
        registeredObjects = self.objectRegistry.get()
        self.unregister(*registeredObjects)
        self.stack = undoManager.stack
        self.register(*registeredObjects)
        logger.debug("merged %r into the stack of %r", self, undoManager)

    def addUndoType(self, typeName, handlers=None):
        self.undoTypes.add(typeName, handlers)

    def changeUndoType(self, typeName, handlers=None):
        self.undoTypes.change(typeName, handlers)

    def removeUndoType(self, typeName):
        self.undoTypes.remove(typeName)

    @staticmethod
    def addGlobalUndoType(typeName, handlers=None):
        """Add an undo type for all undo managers, except those that
        override the type themselves.
        """
        defaultUndoTypes.add(typeName, handlers)

    @staticmethod
    def changeGlobalUndoType(typeName, handlers=None):
        defaultUndoTypes.change(typeName, handlers)

    @staticmethod
    def removeGlobalUndoType(typeName):
        defaultUndoTypes.remove(typeName)
