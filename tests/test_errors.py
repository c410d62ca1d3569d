"""Tests for crash reporting and the operations log."""

import logging
import stat

from mindvault.errors import ERROR_LOG_FILENAME, format_crash, log_exception
from mindvault.logging_config import OPS_LOG_FILENAME, configure_ops_log


def _raise_and_catch():
    try:
        raise RuntimeError("index locked")
    except RuntimeError as e:
        return e


class TestLogException:

    def test_appends_traceback(self, tmp_path):
        exc = _raise_and_catch()
        path = log_exception(exc, context="sync", root=tmp_path)
        assert path == tmp_path / ERROR_LOG_FILENAME

        text = path.read_text(encoding="utf-8")
        assert "sync" in text
        assert "RuntimeError: index locked" in text

        log_exception(exc, root=tmp_path)
        assert path.read_text(encoding="utf-8").count("RuntimeError: index locked") == 2

    def test_owner_only_permissions(self, tmp_path):
        path = log_exception(_raise_and_catch(), root=tmp_path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_format_crash_without_context(self):
        entry = format_crash(_raise_and_catch())
        lines = entry.strip().splitlines()
        assert lines[0] == "=" * 60
        assert lines[1].startswith("[") and lines[1].endswith("]")


class TestOpsLog:

    def test_writes_info_records(self, tmp_path):
        handler = configure_ops_log(tmp_path / "MEMORY")
        try:
            logging.getLogger("mindvault.sync").info("indexed 3 files")
            handler.flush()
        finally:
            logging.getLogger("mindvault").removeHandler(handler)
            handler.close()

        text = (tmp_path / "MEMORY" / OPS_LOG_FILENAME).read_text(encoding="utf-8")
        assert "indexed 3 files" in text
