import asyncio

from infrastructure.cache.local_cache import LocalCache


def test_json_values_survive_reopen(tmp_path) -> None:
    path = str(tmp_path / "cache.db")

    async def scenario():
        await LocalCache(path).set_json("doc", {"a": [1, 2]})
        return await LocalCache(path).get_json("doc")

    assert asyncio.run(scenario()) == {"a": [1, 2]}


def test_missing_and_corrupt_values_fall_back_to_default(cache) -> None:
    async def scenario():
        await cache.set_item("broken", "{oops")
        await cache.set_json("scalar", 5)
        return (
            await cache.get_json("missing", "default"),
            await cache.get_json("broken", []),
            await cache.get_list("scalar"),
        )

    assert asyncio.run(scenario()) == ("default", [], [])


def test_remove_item_reports_whether_key_existed(cache) -> None:
    async def scenario():
        await cache.set_item("k", "v")
        first = await cache.remove_item("k")
        second = await cache.remove_item("k")
        return first, second, await cache.keys()

    assert asyncio.run(scenario()) == (True, False, [])
