"""
Tests for URLShorteningService and the input validators it relies on.
"""

import asyncio

import pytest

from shortener.core.exceptions import ConflictError, EmptyInputError, InvalidURLError, NotFoundError
from shortener.core.validators import is_valid_url, sanitize_short_code, validate_original_url
from shortener.services.code_generator import generate_code
from shortener.services.url_service import BatchItem, URLShorteningService
from shortener.storage import FileStorage

BASE_URL = "http://sho.rt"


class SlowStorage(FileStorage):
    """Memory storage whose lookups and deletions never finish in time."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def get(self, code):
        await asyncio.sleep(self.delay)
        return await super().get(code)

    async def mark_deleted(self, requests):
        await asyncio.sleep(self.delay)
        await super().mark_deleted(requests)


class TestURLValidation:
    """Test URL validation function."""

    def test_valid_urls(self):
        valid_urls = [
            "http://example.com",
            "https://example.com",
            "https://www.example.com/path/to/page",
            "http://subdomain.example.com:8080/path?query=value",
        ]
        for url in valid_urls:
            assert is_valid_url(url), f"Should be valid: {url}"

    def test_invalid_urls(self):
        invalid_urls = [
            "not-a-url",
            "ftp://example.com",  # FTP not supported
            "example.com",  # Missing scheme
            "",
            "http://",  # Missing domain
            "https://example.com/" + "x" * 3000,
        ]
        for url in invalid_urls:
            assert not is_valid_url(url), f"Should be invalid: {url}"

    def test_validate_strips_whitespace(self):
        assert validate_original_url("  https://example.com\n") == "https://example.com"

    def test_validate_rejects(self):
        with pytest.raises(InvalidURLError):
            validate_original_url("example.com")

    def test_sanitize_short_code(self):
        assert sanitize_short_code(generate_code("https://example.com")) == "EAaArVRs"
        assert sanitize_short_code("ab-_12") == "ab-_12"
        assert sanitize_short_code("abc$") is None
        assert sanitize_short_code("a" * 21) is None
        assert sanitize_short_code("") is None


class TestCreateShortURL:

    @pytest.mark.asyncio
    async def test_create(self, service):
        result = await service.create_short_url("https://example.com", "alice")

        assert result.code == generate_code("https://example.com")
        assert result.short_url == f"{BASE_URL}/{result.code}"
        assert result.conflict is False

    @pytest.mark.asyncio
    async def test_repeat_reports_conflict_with_same_code(self, service):
        first = await service.create_short_url("https://example.com", "alice")
        second = await service.create_short_url("https://example.com", "bob")

        assert second.conflict is True
        assert second.code == first.code
        assert second.short_url == first.short_url

    @pytest.mark.asyncio
    async def test_empty_url(self, service):
        with pytest.raises(EmptyInputError):
            await service.create_short_url("", "alice")

    def test_base_url_trailing_slash(self, memory_storage):
        service = URLShorteningService(memory_storage, base_url="http://sho.rt/")
        assert service.short_url("abc") == "http://sho.rt/abc"


class TestCreateBatch:

    @pytest.mark.asyncio
    async def test_results_in_input_order(self, service):
        items = [
            BatchItem(correlation_id=str(i), original_url=f"https://example.com/{i}")
            for i in range(4)
        ]

        results = await service.create_batch(items, "alice")

        assert [result.correlation_id for result in results] == ["0", "1", "2", "3"]
        for item, result in zip(items, results):
            assert result.code == generate_code(item.original_url)
            assert result.short_url == f"{BASE_URL}/{result.code}"
            record = await service.expand(result.code)
            assert record.original_url == item.original_url

    @pytest.mark.asyncio
    async def test_empty_batch(self, service):
        with pytest.raises(EmptyInputError):
            await service.create_batch([], "alice")

    @pytest.mark.asyncio
    async def test_conflict_stores_nothing(self, service):
        await service.create_short_url("https://example.com/1", "alice")
        items = [
            BatchItem(correlation_id="a", original_url="https://example.com/0"),
            BatchItem(correlation_id="b", original_url="https://example.com/1"),
        ]

        with pytest.raises(ConflictError):
            await service.create_batch(items, "alice")

        with pytest.raises(NotFoundError):
            await service.expand(generate_code("https://example.com/0"))


class TestOwnedURLs:

    @pytest.mark.asyncio
    async def test_list_and_delete(self, service):
        a = await service.create_short_url("https://a.io", "alice")
        b = await service.create_short_url("https://b.io", "alice")
        await service.create_short_url("https://c.io", "bob")

        owned = await service.list_owned_urls("alice")
        assert sorted(url.short_url for url in owned) == sorted([a.short_url, b.short_url])

        await service.delete_owned_urls("alice", [a.code])

        assert (await service.expand(a.code)).deleted is True
        remaining = await service.list_owned_urls("alice")
        assert [url.original_url for url in remaining] == ["https://b.io"]

    @pytest.mark.asyncio
    async def test_delete_nothing(self, service):
        await service.delete_owned_urls("alice", [])

    @pytest.mark.asyncio
    async def test_delete_with_small_queue(self, memory_storage):
        service = URLShorteningService(memory_storage, base_url=BASE_URL, deletion_queue_size=1)
        codes = [
            (await service.create_short_url(f"https://example.com/{i}", "alice")).code
            for i in range(5)
        ]

        await service.delete_owned_urls("alice", codes)

        assert await service.list_owned_urls("alice") == []

    @pytest.mark.asyncio
    async def test_stats(self, service):
        await service.create_short_url("https://a.io", "A")
        await service.create_short_url("https://b.io", "A")
        await service.create_short_url("https://c.io", "B")

        stats = await service.get_stats()
        assert (stats.urls, stats.users) == (3, 2)


class TestTimeouts:

    @pytest.mark.asyncio
    async def test_slow_lookup_times_out(self):
        storage = SlowStorage(delay=1.0)
        service = URLShorteningService(storage, base_url=BASE_URL, timeout=0.05)

        with pytest.raises(asyncio.TimeoutError):
            await service.expand("abcd1234")

    @pytest.mark.asyncio
    async def test_slow_deletion_times_out_without_changes(self):
        storage = SlowStorage(delay=1.0)
        service = URLShorteningService(storage, base_url=BASE_URL, timeout=0.05)
        code = (await service.create_short_url("https://example.com", "alice")).code

        with pytest.raises(asyncio.TimeoutError):
            await service.delete_owned_urls("alice", [code])

        assert len(await service.list_owned_urls("alice")) == 1

    @pytest.mark.asyncio
    async def test_timed_out_deletion_leaves_no_pending_producer(self):
        storage = SlowStorage(delay=1.0)
        service = URLShorteningService(
            storage, base_url=BASE_URL, timeout=0.05, deletion_queue_size=1
        )
        codes = [
            (await service.create_short_url(f"https://example.com/{i}", "alice")).code
            for i in range(3)
        ]

        with pytest.raises(asyncio.TimeoutError):
            await service.delete_owned_urls("alice", codes)

        pending_producers = [
            task for task in asyncio.all_tasks()
            if task.get_coro().__name__ == "_produce"
        ]
        assert pending_producers == []

    @pytest.mark.asyncio
    async def test_ping(self, service):
        await service.ping()
