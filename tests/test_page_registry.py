from conftest import PAGE_URL


async def test_acquire_opens_page_with_url(registry, browser):
    page = await registry.acquire("guild-1")

    assert browser.urls == [PAGE_URL]
    assert registry.get("guild-1") is page


async def test_acquire_replaces_stale_page(registry, browser):
    first = await registry.acquire("guild-1")
    second = await registry.acquire("guild-1")

    assert first.closed is True
    assert registry.get("guild-1") is second


async def test_release_swallows_close_errors(registry):
    page = await registry.acquire("guild-1")

    async def broken_close():
        raise RuntimeError("window already gone")

    page.close = broken_close
    await registry.release("guild-1")

    assert registry.get("guild-1") is None


async def test_release_unknown_guild_is_noop(registry):
    await registry.release("nobody")
    assert registry.pages == {}


def test_lock_is_shared_per_guild(registry):
    assert registry.lock("guild-1") is registry.lock("guild-1")
    assert registry.lock("guild-1") is not registry.lock("guild-2")


async def test_reconcile_drops_dead_pages(registry):
    alive = await registry.acquire("guild-1")
    dead = await registry.acquire("guild-2")
    dead.alive = False

    assert await registry.reconcile() == ["guild-2"]
    assert registry.get("guild-1") is alive
    assert registry.get("guild-2") is None


async def test_close_all(registry, browser):
    await registry.acquire("guild-1")
    await registry.acquire("guild-2")

    await registry.close_all()

    assert registry.pages == {}
    assert all(page.closed for page in browser.pages)
