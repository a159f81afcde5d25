"""Tests for reference resolution: local paths, URLs, bundles, trust and caching."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from conftest import FakeFetcher, FakeTrust, gist_payload

from jsrun.core.cache import ContentCache
from jsrun.source.errors import FetchFailure, ResourceNotFound, UntrustedSource
from jsrun.source.resource import fragment_for, is_bundle_url, swizzle_url

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from jsrun.source.resource import ResourceResolver

_URL = "https://example.com/scripts/hello.java"
_GIST = "https://gist.github.com/someone/a1b2c3"
_GIST_API = "https://api.github.com/gists/a1b2c3"


class TestHelpers:
    @pytest.mark.parametrize(
        ("filename", "fragment"),
        [
            ("Two.java", "file-two-java"),
            ("GsonHelper.java", "file-gsonhelper-java"),
            ("my_script.jsh", "file-my-script-jsh"),
        ],
    )
    def test_fragment_for(self, filename: str, fragment: str) -> None:
        assert fragment_for(filename) == fragment

    def test_swizzle_github_blob(self) -> None:
        assert swizzle_url("https://github.com/acme/tools/blob/main/src/App.java") == (
            "https://raw.githubusercontent.com/acme/tools/main/src/App.java"
        )

    def test_swizzle_gitlab_blob(self) -> None:
        assert swizzle_url("https://gitlab.com/acme/tools/-/blob/main/App.java") == (
            "https://gitlab.com/acme/tools/-/raw/main/App.java"
        )

    def test_swizzle_leaves_other_urls(self) -> None:
        assert swizzle_url(_URL) == _URL

    def test_is_bundle_url(self) -> None:
        assert is_bundle_url(_GIST)
        assert not is_bundle_url(_URL)


class TestLocal:
    def test_relative_to_cwd(
        self,
        make_resolver: Callable[..., ResourceResolver],
        write_source: Callable[[str, str], Path],
    ) -> None:
        path = write_source("Hello.java", "class Hello {}\n")
        ref = make_resolver().resolve("Hello.java")
        assert ref.file == path
        assert ref.original == "Hello.java"
        assert not ref.is_url

    def test_relative_to_base(
        self,
        make_resolver: Callable[..., ResourceResolver],
        write_source: Callable[[str, str], Path],
    ) -> None:
        write_source("app/Main.java", "")
        helper = write_source("app/pkg/Helper.java", "")
        resolver = make_resolver()
        base = resolver.resolve("app/Main.java")
        assert resolver.resolve("pkg/Helper.java", base=base).file == helper

    def test_same_reference_same_ref(
        self,
        make_resolver: Callable[..., ResourceResolver],
        write_source: Callable[[str, str], Path],
    ) -> None:
        write_source("A.java", "")
        resolver = make_resolver()
        assert resolver.resolve("A.java") is resolver.resolve("A.java")

    def test_file_url(
        self,
        make_resolver: Callable[..., ResourceResolver],
        write_source: Callable[[str, str], Path],
    ) -> None:
        path = write_source("A.java", "")
        assert make_resolver().resolve(f"file://{path}").file == path

    def test_missing_file(self, make_resolver: Callable[..., ResourceResolver]) -> None:
        with pytest.raises(ResourceNotFound, match="Nope.java"):
            make_resolver().resolve("Nope.java")

    def test_glob_includes_sorted(
        self,
        make_resolver: Callable[..., ResourceResolver],
        write_source: Callable[[str, str], Path],
    ) -> None:
        write_source("pkg/B.java", "")
        write_source("pkg/A.java", "")
        write_source("pkg/notes.txt", "")
        refs = make_resolver().resolve_includes("pkg/*.java")
        assert [r.file.name for r in refs] == ["A.java", "B.java"]

    def test_glob_without_match(self, make_resolver: Callable[..., ResourceResolver]) -> None:
        with pytest.raises(ResourceNotFound):
            make_resolver().resolve_includes("missing/*.java")


class TestRemote:
    def test_untrusted_url_is_never_fetched(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        resolver = make_resolver(trust=FakeTrust("https://trusted.example/"))
        with pytest.raises(UntrustedSource) as exc_info:
            resolver.resolve(_URL)
        assert exc_info.value.url == _URL
        assert fetcher.calls == []

    def test_fetched_once_per_pass(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        fetcher.responses[_URL] = "class hello {}\n"
        resolver = make_resolver()
        first = resolver.resolve(_URL)
        second = resolver.resolve(_URL)
        assert first == second
        assert first.is_url
        assert first.file.name == "hello.java"
        assert first.file.read_text() == "class hello {}\n"
        assert fetcher.calls == [_URL]

    def test_persisted_cache_used_by_next_pass(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        fetcher.responses[_URL] = "class hello {}\n"
        make_resolver().resolve(_URL)
        make_resolver().resolve(_URL)
        assert fetcher.calls == [_URL]

    def test_fresh_refetches(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        fetcher.responses[_URL] = "v1"
        make_resolver().resolve(_URL)
        fetcher.responses[_URL] = "v2"
        ref = make_resolver(fresh=True).resolve(_URL)
        assert ref.file.read_text() == "v2"
        assert fetcher.calls == [_URL, _URL]

    def test_offline_uses_cache(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        fetcher.responses[_URL] = "cached"
        make_resolver().resolve(_URL)
        ref = make_resolver(offline=True).resolve(_URL)
        assert ref.file.read_text() == "cached"
        assert fetcher.calls == [_URL]

    def test_offline_without_cache_fails(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        with pytest.raises(FetchFailure, match="offline"):
            make_resolver(offline=True).resolve(_URL)
        assert fetcher.calls == []

    def test_fetch_failure_propagates(self, make_resolver: Callable[..., ResourceResolver]) -> None:
        with pytest.raises(FetchFailure, match="HTTP 404"):
            make_resolver().resolve(_URL)

    def test_blob_url_fetches_raw_content(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        raw = "https://raw.githubusercontent.com/acme/tools/main/App.java"
        fetcher.responses[raw] = "class App {}"
        ref = make_resolver().resolve("https://github.com/acme/tools/blob/main/App.java")
        assert ref.file.read_text() == "class App {}"
        assert fetcher.calls == [raw]

    def test_relative_reference_from_url_base(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        helper = "https://example.com/scripts/util/Helper.java"
        fetcher.responses[_URL] = ""
        fetcher.responses[helper] = "class Helper {}"
        resolver = make_resolver()
        base = resolver.resolve(_URL)
        ref = resolver.resolve("util/Helper.java", base=base)
        assert ref.original == helper

    def test_url_bytes_land_in_cache(
        self,
        make_resolver: Callable[..., ResourceResolver],
        fetcher: FakeFetcher,
        tmp_path: Path,
    ) -> None:
        fetcher.responses[_URL] = "x"
        cache = ContentCache(tmp_path / "c")
        ref = make_resolver(cache=cache).resolve(_URL)
        assert ref.cache_location == cache.entry_dir(_URL)
        assert cache.get(_URL) == b"x"


class TestBundles:
    @pytest.fixture
    def gist(self, fetcher: FakeFetcher) -> FakeFetcher:
        fetcher.responses[_GIST_API] = gist_payload(
            {
                "One.java": "class One {}\n",
                "Two.java": "class Two {}\n",
                "Three.java": "class Three {}\n",
                "README.md": "docs",
            }
        )
        return fetcher

    def test_three_fragments_three_files_one_fetch(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        resolver = make_resolver()
        refs = [
            resolver.resolve(f"{_GIST}#{fragment_for(name)}")
            for name in ("One.java", "Two.java", "Three.java")
        ]
        assert len({r.file for r in refs}) == 3
        assert [r.file.name for r in refs] == ["One.java", "Two.java", "Three.java"]
        assert refs[1].file.read_text() == "class Two {}\n"
        assert all(r.bundle == _GIST for r in refs)
        assert gist.calls == [_GIST_API]

    def test_fragment_is_case_insensitive(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        ref = make_resolver().resolve(f"{_GIST}#file-TWO-java")
        assert ref.file.name == "Two.java"

    def test_no_fragment_picks_first_source(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        assert make_resolver().resolve(_GIST).file.name == "One.java"

    def test_unknown_fragment(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        with pytest.raises(ResourceNotFound, match="file-four-java"):
            make_resolver().resolve(f"{_GIST}#file-four-java")

    def test_sibling_reference_resolves_within_bundle(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        resolver = make_resolver()
        one = resolver.resolve(f"{_GIST}#file-one-java")
        two = resolver.resolve("Two.java", base=one)
        assert two.original == f"{_GIST}#file-two-java"
        assert gist.calls == [_GIST_API]

    def test_nested_sibling_path_stays_in_bundle(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        resolver = make_resolver()
        one = resolver.resolve(f"{_GIST}#file-one-java")
        two = resolver.resolve("pkg/Two.java", base=one)
        assert two.original == f"{_GIST}#file-two-java"
        assert two.file.name == "Two.java"
        assert gist.calls == [_GIST_API]

    def test_missing_sibling_is_not_found(
        self, make_resolver: Callable[..., ResourceResolver], gist: FakeFetcher
    ) -> None:
        resolver = make_resolver()
        one = resolver.resolve(f"{_GIST}#file-one-java")
        with pytest.raises(ResourceNotFound, match="pkg/Four.java") as exc_info:
            resolver.resolve("pkg/Four.java", base=one)
        assert exc_info.value.reference == "pkg/Four.java"
        assert gist.calls == [_GIST_API]

    def test_truncated_member_fetched_from_raw_url(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        raw = "https://gist.githubusercontent.com/someone/a1b2c3/raw/Big.java"
        fetcher.responses[_GIST_API] = (
            '{"files": {"Big.java": {"filename": "Big.java", "content": "cla",'
            f' "truncated": true, "raw_url": "{raw}"}}}}}}'
        )
        fetcher.responses[raw] = "class Big {}\n"
        ref = make_resolver().resolve(f"{_GIST}#file-big-java")
        assert ref.file.read_text() == "class Big {}\n"

    def test_bad_payload(
        self, make_resolver: Callable[..., ResourceResolver], fetcher: FakeFetcher
    ) -> None:
        fetcher.responses[_GIST_API] = "not json"
        with pytest.raises(FetchFailure, match="unexpected bundle format"):
            make_resolver().resolve(_GIST)
