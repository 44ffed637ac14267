"""Tests for the confirm-then-mutate entity caches."""
import asyncio

from bibliotech.cache import AuthorCache, BookCache


def test_new_cache_is_empty_and_loading(store, notifier):
    """Test the initial state of a cache."""
    cache = AuthorCache(store, notifier)

    assert cache.records == []
    assert cache.is_loading
    assert not cache.loaded


def test_load_replaces_contents(run, store, notifier):
    """Test that load fills the cache in fetch order."""
    store.seed_author("Frank", "Herbert")
    store.seed_author("Jane", "Austen")
    cache = AuthorCache(store, notifier)

    result = run(cache.load())

    assert result.success
    assert not cache.is_loading
    assert [a.last_name for a in cache.records] == ["Austen", "Herbert"]
    assert store.count("list_authors") == 1


def test_failed_load_keeps_previous_state(run, store, notifier):
    """Test that a failed reload neither overwrites nor hangs loading."""
    store.seed_author("Jane", "Austen")
    cache = AuthorCache(store, notifier)
    run(cache.load())
    store.seed_author("Frank", "Herbert")
    store.fail_next("list_authors", "network down")

    result = run(cache.refetch())

    assert not result.success
    assert result.error == "network down"
    assert [a.last_name for a in cache.records] == ["Austen"]
    assert not cache.is_loading
    assert notifier.errors[-1].title == "Error fetching authors"


def test_first_load_failure_clears_loading(run, store, notifier):
    """Test that loading ends even when the very first fetch fails."""
    store.fail_next("list_books_with_author")
    cache = BookCache(store, notifier)

    run(cache.load())

    assert not cache.is_loading
    assert not cache.loaded
    assert cache.records == []


def test_add_inserts_exactly_once(run, store, notifier):
    """Test that a confirmed add appears once under its server id."""
    cache = AuthorCache(store, notifier)
    run(cache.load())

    result = run(cache.add({"first_name": "Jane", "last_name": "Austen"}))

    assert result.success
    ids = [a.id for a in cache.records]
    assert ids.count(result.record.id) == 1
    assert result.record.created_at is not None
    assert notifier.history[-1].title == "Author added"
    assert notifier.history[-1].description == "Jane Austen has been added successfully."


def test_failed_add_leaves_cache_unchanged(run, store, notifier):
    """Test that nothing is added when the store rejects the insert."""
    cache = AuthorCache(store, notifier)
    run(cache.load())
    store.fail_next("insert_author", "permission denied")

    result = run(cache.add({"first_name": "Jane", "last_name": "Austen"}))

    assert not result.success
    assert result.error == "permission denied"
    assert cache.records == []
    assert notifier.errors[-1].title == "Error adding author"
    assert notifier.errors[-1].description == "permission denied"


def test_invalid_add_never_reaches_store(run, store, notifier):
    """Test that validation failures skip the remote call."""
    cache = AuthorCache(store, notifier)
    run(cache.load())

    result = run(cache.add({"first_name": "Jane", "last_name": " "}))

    assert not result.success
    assert store.count("insert_author") == 0
    assert notifier.errors[-1].description == "Please fill in all fields"


def test_update_replaces_full_record(run, store, notifier):
    """Test that update takes the returned record, timestamps included."""
    author = store.seed_author("Jane", "Austen")
    cache = AuthorCache(store, notifier)
    run(cache.load())

    result = run(cache.update(author.id, {"first_name": "Jane", "last_name": "Austen"}))

    cached = cache.get(author.id)
    assert result.success
    assert cached.first_name == "Jane"
    assert cached.last_name == "Austen"
    assert cached.created_at == author.created_at
    assert cached.updated_at != author.updated_at
    assert len(cache) == 1


def test_update_missing_row_fails(run, store, notifier):
    """Test that the store's rejection of a missing id is reported."""
    cache = AuthorCache(store, notifier)
    run(cache.load())

    result = run(cache.update("nope", {"first_name": "A", "last_name": "B"}))

    assert not result.success
    assert "nope" not in cache
    assert notifier.errors[-1].title == "Error updating author"


def test_remove(run, store, notifier):
    """Test that a confirmed delete drops the entry."""
    author = store.seed_author("Jane", "Austen")
    cache = AuthorCache(store, notifier)
    run(cache.load())

    result = run(cache.remove(author.id))

    assert result.success
    assert author.id not in cache
    assert notifier.history[-1].title == "Author deleted"


def test_remove_author_with_books_fails(run, store, notifier):
    """Test that the foreign key rejection keeps the author cached."""
    author = store.seed_author("Jane", "Austen")
    store.seed_book(author.id, "9780141439518", "Pride and Prejudice", 1813)
    cache = AuthorCache(store, notifier)
    run(cache.load())

    result = run(cache.remove(author.id))

    assert not result.success
    assert author.id in cache
    assert notifier.errors[-1].title == "Error deleting author"
    assert "violates foreign key constraint" in notifier.errors[-1].description


def test_book_cache_keeps_no_author_names(run, store, notifier):
    """Test that books are cached without the joined author."""
    author = store.seed_author("Jane", "Austen")
    store.seed_book(author.id, "1", "Emma", 1815)
    cache = BookCache(store, notifier)

    run(cache.load())

    book = cache.records[0]
    assert book.author_id == author.id
    assert not hasattr(book, "author_last_name")


def test_book_add_rejects_short_year(run, store, notifier):
    """Test that a 2-digit year is refused before any remote call."""
    author = store.seed_author("Jane", "Austen")
    cache = BookCache(store, notifier)
    run(cache.load())

    result = run(cache.add({"author_id": author.id, "isbn": "1", "title": "T", "year": "81"}))

    assert not result.success
    assert result.error == "Year must be 4 digits"
    assert store.count("insert_book") == 0
    assert cache.records == []


def test_overlapping_changes_to_one_id_are_rejected(store, notifier):
    """Test that a second change to an id in flight is refused locally."""
    author = store.seed_author("Jane", "Austen")
    cache = AuthorCache(store, notifier)

    async def scenario():
        await cache.load()
        store.gate = asyncio.Event()
        pending = asyncio.create_task(
            cache.update(author.id, {"first_name": "J.", "last_name": "Austen"})
        )
        await asyncio.sleep(0)
        assert cache.is_busy(author.id)

        overlapping = await cache.remove(author.id)

        store.gate.set()
        first = await pending
        return first, overlapping

    first, overlapping = asyncio.run(scenario())

    assert first.success
    assert not overlapping.success
    assert store.count("delete_author") == 0
    assert cache.get(author.id).first_name == "J."
    assert not cache.is_busy(author.id)
    assert "still in progress" in notifier.errors[-1].description


def test_changes_to_different_ids_run_concurrently(store, notifier):
    """Test that only the same id is sequenced."""
    first = store.seed_author("Jane", "Austen")
    second = store.seed_author("Frank", "Herbert")
    cache = AuthorCache(store, notifier)

    async def scenario():
        await cache.load()
        store.gate = asyncio.Event()
        tasks = [
            asyncio.create_task(cache.remove(first.id)),
            asyncio.create_task(cache.remove(second.id)),
        ]
        await asyncio.sleep(0)
        store.gate.set()
        return await asyncio.gather(*tasks)

    results = asyncio.run(scenario())

    assert all(r.success for r in results)
    assert cache.records == []
    assert store.count("delete_author") == 2
