import status_chat.logging_config as logging_config


class RecordingLogger:
    def __init__(self):
        self.added = []

    def remove(self, *args):
        pass

    def add(self, sink, **opts):
        self.added.append((sink, opts))

    def debug(self, message):
        pass


def _console_format(monkeypatch, **kwargs):
    recorder = RecordingLogger()
    monkeypatch.setattr(logging_config, "logger", recorder)
    logging_config.setup_logging(**kwargs)
    return recorder.added


def test_compact_console_drops_timestamps(monkeypatch):
    (sink, opts), = _console_format(monkeypatch, compact=True)
    assert opts["format"] == logging_config.COMPACT_FORMAT
    assert opts["level"] == "INFO"


def test_verbose_console_keeps_timestamps(monkeypatch):
    (sink, opts), = _console_format(monkeypatch, verbose=True)
    assert opts["format"] == logging_config.CONSOLE_FORMAT
    assert opts["level"] == "DEBUG"


def test_log_file_gets_full_debug_sink(monkeypatch, tmp_path):
    log_file = tmp_path / "logs" / "chat.log"
    added = _console_format(monkeypatch, log_file=log_file)

    assert len(added) == 2
    sink, opts = added[1]
    assert sink == log_file
    assert opts["level"] == "DEBUG"
    assert log_file.parent.is_dir()
