import asyncio
from cycleundo import UndoManager
from cycleundo.observable import Collection, Record


def addTodos(todos, *titles):
    records = [Record(title=title, done=False) for title in titles]
    for record in records:
        todos.append(record)
    return records


def archiveDone(todos, archive):
    for todo in [t for t in todos if t.get("done")]:
        todos.remove(todo)
        archive.append(todo)


async def main():
    todos = Collection()
    archive = Collection()
    um = UndoManager(register=[todos], track=True)

    # A second manager for the archive, with its own undo types. It writes onto
    # the main manager's stack, so both share one history.
    archiveUM = UndoManager()
    archiveUM.removeUndoType("insert")  # only removes a local override: insert is still recorded
    archiveUM.merge(um)
    archiveUM.register(archive)

    # Everything done in one event loop step is one undo item.
    um.register(*addTodos(todos, "buy milk", "walk the dog", "water the plants"))
    await asyncio.sleep(0)
    assert len(um.stack) == 3
    assert len(um.undoActions()) == 3

    todos[0].set(done=True)
    await asyncio.sleep(0)
    todos[2].set(done=True, note="the ficus too")
    await asyncio.sleep(0)

    archiveDone(todos, archive)
    await asyncio.sleep(0)
    assert [t.get("title") for t in todos] == ["walk the dog"]
    assert [t.get("title") for t in archive] == ["buy milk", "water the plants"]

    um.undo()
    assert [t.get("title") for t in todos] == ["buy milk", "walk the dog", "water the plants"]
    assert len(archive) == 0

    um.undo()
    assert not todos[2].has("note")
    assert not todos[2].get("done")

    um.redo()
    assert todos[2].get("note") == "the ficus too"

    um.undo()
    um.undo()
    um.undo()
    assert len(todos) == 0
    assert not um.isAvailable("undo")
    assert um.isAvailable("redo")

    um.redo()
    assert [t.get("done") for t in todos] == [False, False, False]


if __name__ == "__main__":
    asyncio.run(main())
