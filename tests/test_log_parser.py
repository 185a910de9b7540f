"""
Test-suite log parsing and excerpt tests.
"""

from buildmatrix.builder.log_parser import LogParser
from buildmatrix.common.utils.file_utils import safe_read_file, tail_text


SUITE_LOG = """\
=========================================
   libdemo 2.1.0: tests/test-suite.log
=========================================

# TOTAL: 12
# PASS:  9
# SKIP:  1
# XFAIL: 0
# FAIL:  1
# XPASS: 0
# ERROR: 1

.. contents:: :depth: 2

FAIL: check_ipc
===============

check_ipc.c:120: assertion failed
FAIL: check_ipc

ERROR: check_loop
=================
"""


class TestLogParser:
    """Test automake log parsing."""

    def setup_method(self):
        self.parser = LogParser(max_excerpt_chars=1000)

    def test_collects_failed_tests_once(self):
        result = self.parser.parse_content(SUITE_LOG)

        assert result.failed_tests == ["check_ipc", "check_loop"]

    def test_reads_totals(self):
        result = self.parser.parse_content(SUITE_LOG)

        assert result.total_tests == 12
        assert result.totals["FAIL"] == 1
        assert result.totals["ERROR"] == 1
        assert "total=12" in self.parser.get_summary(result)

    def test_missing_file_gives_none(self, tmp_path):
        assert self.parser.parse_file(tmp_path / "tests" / "test-suite.log") is None

    def test_parse_file(self, tmp_path):
        log = tmp_path / "test-suite.log"
        log.write_text(SUITE_LOG)

        result = self.parser.parse_file(log)

        assert result.content == SUITE_LOG
        assert self.parser.excerpt(result) == SUITE_LOG

    def test_blank_log_has_no_excerpt(self):
        assert self.parser.excerpt(self.parser.parse_content("  \n")) is None

    def test_long_log_keeps_the_tail(self):
        parser = LogParser(max_excerpt_chars=300)
        content = "".join(f"line {i}\n" for i in range(200))

        excerpt = parser.excerpt(parser.parse_content(content))

        assert excerpt.startswith("[... truncated ...]\n")
        assert excerpt.endswith("line 199\n")
        assert "line 0\n" not in excerpt


class TestFileUtils:
    """Test file helpers."""

    def test_tail_text_short_content_is_unchanged(self):
        assert tail_text("abc\n", 10) == "abc\n"

    def test_tail_text_starts_on_a_line_boundary(self):
        text = tail_text("first line\nsecond line\nthird\n", 15)

        assert text == "[... truncated ...]\nthird\n"

    def test_safe_read_file_default(self, tmp_path):
        assert safe_read_file(tmp_path / "missing", default="x") == "x"
        assert safe_read_file(tmp_path) is None
