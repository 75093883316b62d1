import asyncio

import pytest

from blogstore.db_context import ReadWriteLock


@pytest.mark.asyncio
async def test_readers_share_the_lock():
    lock = ReadWriteLock()
    both_inside = asyncio.Event()
    inside = 0

    async def reader():
        nonlocal inside
        async with lock.read():
            inside += 1
            if inside == 2:
                both_inside.set()
            await asyncio.wait_for(both_inside.wait(), timeout=1)

    await asyncio.gather(reader(), reader())
    assert lock.readers == 0


@pytest.mark.asyncio
async def test_writer_waits_for_readers():
    lock = ReadWriteLock()
    events: list[str] = []
    release_reader = asyncio.Event()

    async def reader():
        async with lock.read():
            events.append("read-start")
            await release_reader.wait()
            events.append("read-end")

    async def writer():
        async with lock.write():
            events.append("write")

    reader_task = asyncio.create_task(reader())
    await asyncio.sleep(0)
    writer_task = asyncio.create_task(writer())
    await asyncio.sleep(0.01)

    assert events == ["read-start"]
    release_reader.set()
    await asyncio.gather(reader_task, writer_task)

    assert events == ["read-start", "read-end", "write"]


@pytest.mark.asyncio
async def test_writers_are_exclusive():
    lock = ReadWriteLock()
    active = 0
    max_active = 0

    async def writer():
        nonlocal active, max_active
        async with lock.write():
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0)
            active -= 1

    await asyncio.gather(*(writer() for _ in range(5)))

    assert max_active == 1
    assert not lock.writer_active


@pytest.mark.asyncio
async def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    events: list[str] = []
    release_first = asyncio.Event()

    async def first_reader():
        async with lock.read():
            await release_first.wait()

    async def writer():
        async with lock.write():
            events.append("write")

    async def late_reader():
        async with lock.read():
            events.append("late-read")

    tasks = [asyncio.create_task(first_reader())]
    await asyncio.sleep(0)
    tasks.append(asyncio.create_task(writer()))
    await asyncio.sleep(0)
    tasks.append(asyncio.create_task(late_reader()))
    await asyncio.sleep(0.01)

    assert events == []
    release_first.set()
    await asyncio.gather(*tasks)

    assert events == ["write", "late-read"]


@pytest.mark.asyncio
async def test_lock_released_on_exception():
    lock = ReadWriteLock()

    with pytest.raises(RuntimeError):
        async with lock.write():
            raise RuntimeError("boom")

    async with lock.read():
        assert lock.readers == 1
    assert not lock.writer_active
