"""Tests for the live, non-recursive secondary search."""

import logging

from ugid_index.core.range_filter import RangeFilter
from ugid_index.queries.search import SearchResult, search


class TestSearch:
    """Tests for search() against an in-memory filesystem."""

    def test_uid_only(self, project_fs):
        result = search("500", "", ["/data/proj"], source=project_fs)
        assert result.paths == ["/data/proj/link", "/data/proj/run", "/data/proj/x.dat"]
        assert result.error_count == 0

    def test_both_filters_must_match(self, project_fs):
        result = search("500", "300", ["/data/proj"], source=project_fs)
        assert result.paths == ["/data/proj/run"]

    def test_gid_only(self, project_fs):
        result = search(None, "100", ["/data/proj"], source=project_fs)
        assert result.paths == ["/data/proj/link", "/data/proj/x.dat", "/data/proj/y.dat"]

    def test_not_recursive(self, project_fs):
        result = search("500", "", ["/data"], source=project_fs)
        assert result.paths == []

    def test_accepts_filters(self, project_fs):
        result = search(RangeFilter("501"), RangeFilter(), ["/data/proj"], source=project_fs)
        assert result.paths == ["/data/proj/y.dat"]

    def test_sorted_and_unique_across_directories(self, project_fs):
        result = search("500", "", ["/data/proj/run", "/data/proj", "/data/proj"], source=project_fs)
        assert result.paths == [
            "/data/proj/link",
            "/data/proj/run",
            "/data/proj/run/out",
            "/data/proj/x.dat",
        ]

    def test_live_ownership_wins_over_index(self, simple_fs):
        """A file chowned since the scan is reported under its new owner."""
        simple_fs.add("/a/f2", 600, 100)
        result = search("500", "", ["/a"], source=simple_fs)
        assert result.paths == ["/a/f1"]

    def test_unreadable_and_stat_errors_collected(self, project_fs):
        project_fs.unreadable.add("/data/home")
        project_fs.unstatable.update({"/data/proj/x.dat", "/data/proj/y.dat"})
        result = search("", "", ["/data/home", "/data/proj", "/gone"], source=project_fs)
        assert result.unreadable == ["/data/home", "/gone"]
        assert result.stat_errors == {"/data/proj": 2}
        assert result.error_count == 4
        assert result.paths == ["/data/proj/link", "/data/proj/run"]

    def test_no_directories(self, project_fs):
        assert search("1", "1", [], source=project_fs).paths == []


class TestSearchResultReport:
    """Tests for the aggregated error summary."""

    def test_quiet_when_clean(self, caplog):
        with caplog.at_level(logging.WARNING):
            SearchResult(paths=["/x"]).report()
        assert caplog.records == []

    def test_one_warning_per_kind(self, caplog):
        result = SearchResult()
        result.unreadable.extend(["/a", "/b"])
        result.stat_errors.update({"/c": 3, "/d": 1})
        with caplog.at_level(logging.WARNING):
            result.report()
        messages = [r.getMessage() for r in caplog.records]
        assert messages == [
            "2 candidate directories could not be read (e.g. /a)",
            "4 entries in 2 directories could not be stat'ed (most in /c: 3)",
        ]

    def test_singular_wording(self, caplog):
        result = SearchResult()
        result.unreadable.append("/a")
        result.stat_errors["/c"] += 1
        with caplog.at_level(logging.WARNING):
            result.report()
        assert "1 candidate directory could not be read" in caplog.text
        assert "1 entry in 1 directory could not be stat'ed" in caplog.text
