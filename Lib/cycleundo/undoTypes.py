from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
import logging
import typing


logger = logging.getLogger(__name__)


_handlerNames = ("capture", "undo", "redo")


@dataclass(frozen=True)
class UndoType:

    """An UndoType tells an undo stack how to record and replay one kind of
    change. It has three handler fields:

    - capture: called with the arguments of the change event, returns a dict
      with "object", "before" and "after" keys, or a false value if the change
      can't be recorded. Additional keys end up in the `info` dict of the
      recorded Action.
    - undo: called as undo(object, before, after, action), rolls back the
      change.
    - redo: called as redo(object, before, after, action), performs the change
      again.
    """

    capture: typing.Callable
    undo: typing.Callable
    redo: typing.Callable


def _asHandlerDict(handlers):
    if isinstance(handlers, UndoType):
        return {name: getattr(handlers, name) for name in _handlerNames}
    if isinstance(handlers, Mapping):
        return dict(handlers)
    return None


def _isBulk(typeName):
    return isinstance(typeName, Iterable) and not isinstance(typeName, str)


class UndoTypeRegistry:

    """A table of undo types, keyed by event name.

    A registry can have a parent registry: lookups that fail locally fall back
    to the parent at the time of the lookup. Changes to the parent are
    therefore visible to all child registries, except for the types a child
    overrides itself.

        >>> parent = UndoTypeRegistry()
        >>> child = UndoTypeRegistry(parent)
        >>> parent.add("poke", UndoType(capture=print, undo=print, redo=print))
        >>> "poke" in child
        True
        >>> child.remove("poke")  # only removes a local override, if any
        >>> "poke" in child
        True

    Malformed manipulations are ignored: adding a type without all three
    handlers as callables, or changing a type that doesn't resolve, does
    nothing.
    """

    def __init__(self, parent=None):
        self.parent = parent
        self._undoTypes = {}

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self._undoTypes)}, parent={self.parent!r})"

    def __contains__(self, typeName):
        return self.resolve(typeName) is not None

    def resolve(self, typeName):
        """Return the UndoType for `typeName`, or None if neither this
        registry nor its parent knows the type.
        """
        undoType = self._undoTypes.get(typeName)
        if undoType is None and self.parent is not None:
            undoType = self.parent.resolve(typeName)
        return undoType

    def typeNames(self):
        """Return a list of all type names that resolve in this registry."""
        names = [] if self.parent is None else self.parent.typeNames()
        names.extend(name for name in self._undoTypes if name not in names)
        return names

    def add(self, typeName, handlers=None):
        """Add or replace an undo type. `handlers` is an UndoType, or a
        mapping with "capture", "undo" and "redo" callables.

        `typeName` can also be a mapping of type names to handlers, to add
        several types at once.
        """
        if isinstance(typeName, Mapping):
            for name, nameHandlers in typeName.items():
                self.add(name, nameHandlers)
            return
        handlerDict = _asHandlerDict(handlers)
        if handlerDict is None or not all(callable(handlerDict.get(name)) for name in _handlerNames):
            logger.debug("ignoring undo type %r: capture, undo and redo must be callables", typeName)
            return
        self._undoTypes[typeName] = UndoType(**{name: handlerDict[name] for name in _handlerNames})

    def change(self, typeName, handlers=None):
        """Replace one or more handlers of an existing undo type. `handlers`
        is a mapping containing any of the "capture", "undo" and "redo" keys.

        If the type is inherited from the parent registry, the changed type is
        stored in this registry; the parent is not modified.

        `typeName` can also be a mapping of type names to handlers.
        """
        if isinstance(typeName, Mapping):
            for name, nameHandlers in typeName.items():
                self.change(name, nameHandlers)
            return
        undoType = self.resolve(typeName)
        handlerDict = _asHandlerDict(handlers)
        if undoType is None or handlerDict is None:
            logger.debug("ignoring change of undo type %r", typeName)
            return
        changes = {name: handler for name, handler in handlerDict.items()
                   if name in _handlerNames and callable(handler)}
        self._undoTypes[typeName] = replace(undoType, **changes)

    def remove(self, typeName):
        """Remove an undo type from this registry. A type inherited from the
        parent registry is not affected.

        `typeName` can also be a mapping (its keys are used) or a sequence of
        type names.
        """
        if _isBulk(typeName):
            for name in list(typeName):
                self.remove(name)
            return
        self._undoTypes.pop(typeName, None)


#
# Built-in undo types, for the Record and Collection classes from the
# observable module, or any objects with the same interface.
#

def _optionIndex(options):
    if options is None:
        return None
    return options.get("index")


def _captureInsert(record, collection, options=None):
    return dict(object=collection, before=None, after=record, index=_optionIndex(options))


def _undoInsert(collection, before, after, action):
    collection.remove(after)


def _redoInsert(collection, before, after, action):
    collection.insert(after, action.info.get("index"))


def _captureRemove(record, collection, options=None):
    return dict(object=collection, before=record, after=None, index=_optionIndex(options))


def _undoRemove(collection, before, after, action):
    collection.insert(before, action.info.get("index"))


def _redoRemove(collection, before, after, action):
    collection.remove(before)


def _captureFieldChange(record, *args):
    previous = record.previousAttributes()
    current = record.toDict()
    keys = record.changedKeys()
    before = {k: previous[k] for k in keys if k in previous}
    after = {k: current[k] for k in keys if k in current}
    return dict(object=record, before=before, after=after)


def _setFields(record, values, replacedValues):
    # fields that only exist in replacedValues did not exist in this state
    staleKeys = [k for k in replacedValues if k not in values]
    if staleKeys:
        record.unset(*staleKeys)
    record.set(values)


def _undoFieldChange(record, before, after, action):
    _setFields(record, before, after)


def _redoFieldChange(record, before, after, action):
    _setFields(record, after, before)


def _captureReset(collection, options=None):
    previousRecords = () if options is None else options.get("previousRecords", ())
    return dict(object=collection, before=list(previousRecords), after=list(collection))


def _undoReset(collection, before, after, action):
    collection.reset(before)


def _redoReset(collection, before, after, action):
    collection.reset(after)


# The process-wide default undo types. Each UndoManager has its own registry,
# with this one as parent.
defaultUndoTypes = UndoTypeRegistry()

defaultUndoTypes.add({
    "insert": UndoType(capture=_captureInsert, undo=_undoInsert, redo=_redoInsert),
    "remove": UndoType(capture=_captureRemove, undo=_undoRemove, redo=_redoRemove),
    "fieldChange": UndoType(capture=_captureFieldChange, undo=_undoFieldChange, redo=_redoFieldChange),
    "reset": UndoType(capture=_captureReset, undo=_undoReset, redo=_redoReset),
})
