import pytest

from tron.sink import ComboSink


class RecordingSink:
    def __init__(self, log, name):
        self.log = log
        self.name = name

    def consume(self, view):
        self.log.append((self.name, view))


class FailingSink:
    def consume(self, view):
        raise RuntimeError("sink failed")


def test_empty_combo_sink_accepts_values():
    sink = ComboSink()
    sink.consume(object())
    assert len(sink) == 0


def test_consume_reaches_every_sink_in_order():
    log = []
    combo = ComboSink()
    combo.push(RecordingSink(log, "a"))
    combo.push(RecordingSink(log, "b"))
    view = {"frame": 1}

    combo.consume(view)

    assert [name for name, _ in log] == ["a", "b"]
    assert all(value is view for _, value in log)


def test_error_stops_later_sinks():
    log = []
    combo = ComboSink()
    combo.push(RecordingSink(log, "a"))
    combo.push(FailingSink())
    combo.push(RecordingSink(log, "c"))

    with pytest.raises(RuntimeError):
        combo.consume("view")

    assert [name for name, _ in log] == ["a"]