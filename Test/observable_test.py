from cycleundo.observable import Collection, EventEmitter, Observable, Record


class _OnOff:

    def on(self, eventName, callback):
        pass

    def off(self, eventName, callback):
        pass


class _OnlyOn:

    def on(self, eventName, callback):
        pass


class TestObservable:

    def test_subclasshook(self):
        assert isinstance(_OnOff(), Observable)
        assert not isinstance(_OnlyOn(), Observable)
        assert not isinstance([], Observable)
        assert isinstance(EventEmitter(), Observable)
        assert isinstance(Record(), Observable)
        assert isinstance(Collection(), Observable)


class TestEventEmitter:

    def test_trigger(self):
        events = []
        emitter = EventEmitter()
        emitter.on("poke", lambda *args: events.append(("poke",) + args))
        emitter.on("all", lambda *args: events.append(("all",) + args))
        emitter.trigger("poke", 1, 2)
        emitter.trigger("prod")
        assert events == [("poke", 1, 2), ("all", "poke", 1, 2), ("all", "prod")]

    def test_off_bound_method(self):
        events = []

        class Listener:
            def onEvent(self, *args):
                events.append(args)

        listener = Listener()
        emitter = EventEmitter()
        emitter.on("all", listener.onEvent)
        emitter.trigger("poke")
        emitter.off("all", listener.onEvent)
        emitter.trigger("poke")
        assert events == [("poke",)]

    def test_off_all(self):
        events = []
        emitter = EventEmitter()
        emitter.on("poke", events.append)
        emitter.on("poke", events.append)
        emitter.off("poke")
        emitter.off("prod")
        emitter.off("prod", events.append)
        emitter.trigger("poke", 1)
        assert events == []


class TestRecord:

    def test_cid(self):
        r1 = Record()
        r2 = Record()
        assert r1.cid != r2.cid

    def test_set(self):
        events = []
        record = Record(a=1)
        record.on("all", lambda *args: events.append(args))
        record.set(a=2, b=3)
        assert record.toDict() == {"a": 2, "b": 3}
        assert record.previousAttributes() == {"a": 1}
        assert record.changedKeys() == ("a", "b")
        assert events == [("fieldChange", record)]

    def test_set_mapping(self):
        record = Record()
        record.set({"a": 1}, b=2)
        assert record.toDict() == {"a": 1, "b": 2}

    def test_set_no_change(self):
        events = []
        record = Record(a=1)
        record.on("fieldChange", events.append)
        record.set(a=1)
        record.unset("b")
        assert events == []

    def test_unset(self):
        record = Record(a=1, b=2)
        record.unset("a", "c")
        assert record.toDict() == {"b": 2}
        assert not record.has("a")
        assert record.get("a") is None
        assert record.get("a", 0) == 0
        assert record.changedKeys() == ("a",)
        assert record.previousAttributes() == {"a": 1, "b": 2}

    def test_repr(self):
        assert repr(Record(a=1, b="2")) == "Record(a=1, b='2')"


class TestCollection:

    def test_insert(self):
        events = []
        r1, r2, r3 = Record(), Record(), Record()
        collection = Collection()
        collection.on("all", lambda *args: events.append(args))
        collection.insert(r1)
        collection.insert(r2, 0)
        collection.insert(r3, 100)
        assert list(collection) == [r2, r1, r3]
        assert events == [
            ("insert", r1, collection, {"index": 0}),
            ("insert", r2, collection, {"index": 0}),
            ("insert", r3, collection, {"index": 2}),
        ]

    def test_insert_negative_index(self):
        r1, r2, r3 = Record(), Record(), Record()
        collection = Collection([r1, r2])
        collection.insert(r3, -1)
        assert list(collection) == [r1, r3, r2]
        assert collection.indexOf(r3) == 1

    def test_insert_present(self):
        events = []
        record = Record()
        collection = Collection([record])
        collection.on("all", lambda *args: events.append(args))
        collection.append(record)
        assert len(collection) == 1
        assert events == []

    def test_remove(self):
        events = []
        r1, r2 = Record(), Record()
        collection = Collection([r1, r2])
        collection.on("all", lambda *args: events.append(args))
        collection.remove(r2)
        collection.remove(r2)
        assert list(collection) == [r1]
        assert r2 not in collection
        assert collection.indexOf(r2) == -1
        assert events == [("remove", r2, collection, {"index": 1})]

    def test_reset(self):
        events = []
        r1, r2, r3 = Record(), Record(), Record()
        collection = Collection([r1, r2])
        collection.on("all", lambda *args: events.append(args))
        collection.reset([r3])
        assert list(collection) == [r3]
        assert collection[0] is r3
        assert events == [("reset", collection, {"previousRecords": [r1, r2]})]
