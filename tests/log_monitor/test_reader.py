"""Tests for incremental line reading."""

import pytest

from mcp_monitor.log_monitor.reader import read_new_lines, split_complete_lines


class TestSplitCompleteLines:
    def test_complete_lines(self):
        lines, consumed = split_complete_lines(b"first\nsecond\n")

        assert lines == ["first", "second"]
        assert consumed == 13

    def test_trailing_fragment_is_not_consumed(self):
        lines, consumed = split_complete_lines(b"first\nsec")

        assert lines == ["first"]
        assert consumed == len(b"first\n")

    def test_no_terminator_at_all(self):
        assert split_complete_lines(b"partial") == ([], 0)
        assert split_complete_lines(b"") == ([], 0)

    def test_crlf_terminators(self):
        lines, consumed = split_complete_lines(b"one\r\ntwo\r\n")

        assert lines == ["one", "two"]
        assert consumed == 10

    def test_empty_lines_are_kept(self):
        lines, _ = split_complete_lines(b"a\n\nb\n")

        assert lines == ["a", "", "b"]

    def test_utf8_multibyte(self):
        data = "héllo → wörld\n".encode("utf-8")

        lines, consumed = split_complete_lines(data)

        assert lines == ["héllo → wörld"]
        assert consumed == len(data)

    def test_invalid_utf8_is_replaced(self):
        lines, _ = split_complete_lines(b"bad \xff byte\n")

        assert lines == ["bad � byte"]


class TestReadNewLines:
    @pytest.mark.asyncio
    async def test_reads_from_offset(self, tmp_path):
        log_file = tmp_path / "test.log"
        log_file.write_bytes(b"old line\nnew line\n")

        result = await read_new_lines(str(log_file), len(b"old line\n"))

        assert result.lines == ["new line"]
        assert result.offset == log_file.stat().st_size

    @pytest.mark.asyncio
    async def test_partial_line_completed_later(self, tmp_path):
        log_file = tmp_path / "test.log"
        log_file.write_bytes(b"complete\nhalf")

        first = await read_new_lines(str(log_file), 0)
        assert first.lines == ["complete"]
        assert first.offset == len(b"complete\n")

        with open(log_file, "ab") as f:
            f.write(b" done\n")

        second = await read_new_lines(str(log_file), first.offset)
        assert second.lines == ["half done"]
        assert second.offset == log_file.stat().st_size

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await read_new_lines(str(tmp_path / "missing.log"), 0)
