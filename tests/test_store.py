import datetime
import threading

import pytest

from tonic.store import KeyStore


@pytest.fixture
def store():
    return KeyStore()


def test_set_get(store):
    store.set("foo", "bar")
    assert store.get("foo") == "bar"
    assert "foo" in store
    assert store.get("foo2") is None
    assert "foo2" not in store
    assert store.must_get("foo") == "bar"


def test_get_default(store):
    assert store.get("missing", "fallback") == "fallback"


def test_must_get_missing_raises(store):
    with pytest.raises(KeyError, match='Key "no_exist" does not exist'):
        store.must_get("no_exist")


def test_set_get_values(store):
    store.set("string", "this is a string")
    store.set("int", -42)
    store.set("big", 42424242424242)
    store.set("float", 4.2)
    assert store.must_get("string") == "this is a string"
    assert store.must_get("int") == -42
    assert store.must_get("big") == 42424242424242
    assert store.must_get("float") == pytest.approx(4.2, abs=0.01)


def test_get_string(store):
    store.set("string", "this is a string")
    assert store.get_string("string") == "this is a string"
    assert store.get_string("missing") == ""


def test_get_bool(store):
    store.set("bool", True)
    assert store.get_bool("bool") is True
    assert store.get_bool("missing") is False


@pytest.mark.parametrize("value", [1, 0x7F, 0x7FFF, 0x7FFFFFFF, 42424242424242, 18446744073709551615])
def test_get_int(store, value):
    store.set("int", value)
    assert store.get_int("int") == value


def test_get_int_rejects_other_types(store):
    store.set("flag", True)
    store.set("text", "1")
    assert store.get_int("flag") == 0
    assert store.get_int("text") == 0


def test_get_float(store):
    store.set("float64", 4.2)
    store.set("float32", 3.14)
    assert store.get_float("float64") == pytest.approx(4.2, abs=0.01)
    assert store.get_float("float32") == pytest.approx(3.14, abs=0.01)
    assert store.get_float("missing") == 0.0


def test_get_time(store):
    moment = datetime.datetime(2017, 1, 1, 12, 0, 0)
    store.set("time", moment)
    assert store.get_time("time") == moment
    assert store.get_time("missing") == datetime.datetime.min


def test_get_duration(store):
    store.set("duration", datetime.timedelta(seconds=1))
    assert store.get_duration("duration") == datetime.timedelta(seconds=1)
    assert store.get_duration("missing") == datetime.timedelta(0)


def test_get_int_list(store):
    store.set("int-slice", [1, 2])
    assert store.get_int_list("int-slice") == [1, 2]
    store.set("mixed", [1, "2"])
    assert store.get_int_list("mixed") == []


def test_get_float_list(store):
    store.set("float-slice", [1.0, 2.0])
    assert store.get_float_list("float-slice") == [1.0, 2.0]
    assert store.get_float_list("missing") == []


def test_get_string_list(store):
    store.set("slice", ["foo"])
    assert store.get_string_list("slice") == ["foo"]
    store.set("numbers", [1])
    assert store.get_string_list("numbers") == []


def test_get_string_map(store):
    store.set("map", {"foo": 1})
    assert store.get_string_map("map") == {"foo": 1}
    assert store.get_string_map("map")["foo"] == 1
    assert store.get_string_map("missing") == {}


def test_get_string_map_string(store):
    store.set("map", {"foo": "bar"})
    assert store.get_string_map_string("map") == {"foo": "bar"}
    assert store.get_string_map_string("map")["foo"] == "bar"
    store.set("other", {"foo": 1})
    assert store.get_string_map_string("other") == {}


def test_get_string_map_string_list(store):
    store.set("map", {"foo": ["foo"]})
    assert store.get_string_map_string_list("map") == {"foo": ["foo"]}
    assert store.get_string_map_string_list("map")["foo"] == ["foo"]
    store.set("bad", {"foo": "foo"})
    assert store.get_string_map_string_list("bad") == {}


def test_copy_is_independent(store):
    store.set("foo", "bar")
    duplicate = store.copy()
    assert duplicate == store
    duplicate.set("foo", "notBar")
    assert store.get("foo") == "bar"
    assert duplicate.get("foo") == "notBar"


def test_clear(store):
    store.set("foo", "bar")
    store.clear()
    assert len(store) == 0
    assert store.get("foo") is None


def test_concurrent_sets(store):
    def worker(offset):
        for index in range(100):
            store.set(f"k{offset}-{index}", index)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(store) == 400
    assert store.get_int("k3-99") == 99