import asyncio

from polite_crawler.engines.frontier import Frontier


def test_try_enqueue_claims_once():
    async def _run():
        frontier = Frontier()
        assert frontier.try_enqueue("A") is True
        assert frontier.try_enqueue("A") is False
        assert frontier.pending_count == 1

        assert frontier.dequeue() == "A"
        # Visited locations are never queued again.
        assert frontier.try_enqueue("A") is False
        assert frontier.dequeue() is None
        assert frontier.visited == {"A"}
        assert "A" in frontier

    asyncio.run(_run())


def test_dequeue_is_fifo():
    async def _run():
        frontier = Frontier()
        for location in ["c", "a", "b"]:
            frontier.try_enqueue(location)
        return [frontier.dequeue() for _ in range(4)]

    assert asyncio.run(_run()) == ["c", "a", "b", None]


def test_seed_skips_duplicates():
    async def _run():
        frontier = Frontier()
        added = frontier.seed(["A", "B", "A", "C", "B"])
        return added, frontier.claimed_count, len(frontier)

    assert asyncio.run(_run()) == (3, 3, 3)


def test_get_waits_for_new_work():
    async def _run():
        frontier = Frontier()
        waiter = asyncio.create_task(frontier.get())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        frontier.try_enqueue("late")
        return await asyncio.wait_for(waiter, timeout=1)

    assert asyncio.run(_run()) == "late"


def test_single_location_goes_to_one_waiter():
    async def _run():
        frontier = Frontier()
        waiters = [asyncio.create_task(frontier.get()) for _ in range(3)]
        await asyncio.sleep(0)
        frontier.try_enqueue("only")
        await asyncio.sleep(0.01)
        done = [w for w in waiters if w.done()]
        frontier.close()
        rest = await asyncio.gather(*waiters)
        return [w.result() for w in done], rest

    done, results = asyncio.run(_run())
    assert done == ["only"]
    assert results.count("only") == 1
    assert results.count(None) == 2


def test_close_releases_waiters_and_rejects_work():
    async def _run():
        frontier = Frontier()
        frontier.try_enqueue("A")
        frontier.dequeue()
        waiters = [asyncio.create_task(frontier.get()) for _ in range(4)]
        await asyncio.sleep(0)
        frontier.close()
        results = await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)
        return results, frontier.try_enqueue("B"), frontier.closed

    results, accepted, closed = asyncio.run(_run())
    assert results == [None] * 4
    assert accepted is False
    assert closed is True


def test_closed_frontier_stops_handing_out_pending_work():
    async def _run():
        frontier = Frontier()
        frontier.seed(["A", "B"])
        frontier.close()
        return frontier.dequeue(), await frontier.get(), frontier.pending_count

    assert asyncio.run(_run()) == (None, None, 2)
