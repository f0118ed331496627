from musicalert.models.catalog import AggregatedRelease, Artist, Release, parse_release_date
from musicalert.services.releases.dedupe import deduplicate_releases, normalize_title, sort_releases


def release(release_id: str, name: str, date: str, album_type: str = "album") -> Release:
    return Release(id=release_id, name=name, release_date=date, album_type=album_type)


class TestParseReleaseDate:
    def test_day_precision(self):
        assert parse_release_date("2024-01-01") == 1_704_067_200_000

    def test_month_and_year_precision(self):
        assert parse_release_date("2024-01") == 1_704_067_200_000
        assert parse_release_date("2024") == 1_704_067_200_000

    def test_unparseable(self):
        assert parse_release_date("") is None
        assert parse_release_date(None) is None
        assert parse_release_date("0000-00-00") is None
        assert parse_release_date("soon") is None


class TestDeduplicateReleases:
    def test_titles_are_compared_case_insensitively(self):
        assert normalize_title("  Get Lucky ") == "get lucky"

        result = deduplicate_releases(
            [release("a", "Get Lucky", "2013-04-19"), release("b", "get lucky ", "2013-05-17")]
        )

        assert [r.id for r in result] == ["b"]

    def test_newer_album_beats_older_single(self):
        result = deduplicate_releases(
            [release("s", "Song", "2024-01-01", "single"), release("a", "Song", "2024-02-01", "album")]
        )

        assert [r.id for r in result] == ["a"]

    def test_single_beats_album_on_same_date(self):
        for ordering in (["a", "s"], ["s", "a"]):
            items = {
                "a": release("a", "Song", "2024-01-01", "album"),
                "s": release("s", "Song", "2024-01-01", "single"),
            }
            result = deduplicate_releases([items[k] for k in ordering])
            assert [r.id for r in result] == ["s"]

    def test_first_seen_wins_full_tie(self):
        result = deduplicate_releases([release("a", "Song", "2024-01-01"), release("b", "Song", "2024-01-01")])

        assert [r.id for r in result] == ["a"]

    def test_sorted_newest_first(self):
        result = deduplicate_releases(
            [
                release("old", "Old", "2019-05-05"),
                release("undated", "Mystery", "unknown"),
                release("new", "New", "2024-03-01"),
                release("year", "Year", "2021"),
            ]
        )

        assert [r.id for r in result] == ["new", "year", "old", "undated"]

    def test_empty(self):
        assert deduplicate_releases([]) == []


class TestSortReleases:
    def _aggregated(self, artist_name: str, date: str) -> AggregatedRelease:
        return AggregatedRelease(
            artist=Artist(id=artist_name.lower(), name=artist_name),
            album=release(f"{artist_name}-{date}", "Album", date),
        )

    def test_orders(self):
        items = [
            self._aggregated("beta", "2024-01-02"),
            self._aggregated("Alpha", "2024-01-03"),
            self._aggregated("Gamma", "2024-01-01"),
        ]

        def names(order):
            return [r.artist.name for r in sort_releases(items, order)]

        assert names("date-desc") == ["Alpha", "beta", "Gamma"]
        assert names("date-asc") == ["Gamma", "beta", "Alpha"]
        assert names("artist-asc") == ["Alpha", "beta", "Gamma"]
        assert names("artist-desc") == ["Gamma", "beta", "Alpha"]

    def test_does_not_mutate_input(self):
        items = [self._aggregated("A", "2024-01-01"), self._aggregated("B", "2024-01-02")]

        sort_releases(items)

        assert [r.artist.name for r in items] == ["A", "B"]
