import asyncio
import threading

from flowcanvas.storage.writer import PersistenceWriter


def test_submit_never_blocks_and_flush_applies_in_order():
    writer = PersistenceWriter()
    applied = []
    writer.submit(applied.append, 1)
    writer.submit(applied.append, 2)
    assert applied == []
    assert writer.pending == 2
    assert writer.flush() == 2
    assert applied == [1, 2]
    assert writer.pending == 0


def test_failures_are_published_not_raised():
    writer = PersistenceWriter()
    errors = []
    writer.on_error(errors.append)

    def failing():
        raise OSError("disk gone")

    writer.submit(failing)
    writer.flush()
    assert len(errors) == 1 and isinstance(errors[0], OSError)
    assert writer.failures == 1


def test_off_error_unsubscribes():
    writer = PersistenceWriter()
    errors = []
    writer.on_error(errors.append)
    writer.off_error(errors.append)

    def failing():
        raise ValueError("bad")

    writer.submit(failing)
    writer.flush()
    assert errors == []


def test_error_callback_exception_is_logged(caplog):
    writer = PersistenceWriter()

    def broken_callback(error):
        raise RuntimeError("callback exploded")

    def failing():
        raise OSError("disk gone")

    writer.on_error(broken_callback)
    writer.submit(failing)
    writer.flush()
    assert "callback exploded" in caplog.text


def test_discard_pending():
    writer = PersistenceWriter()
    applied = []
    writer.submit(applied.append, 1)
    assert writer.discard_pending() == 1
    assert writer.flush() == 0
    assert applied == []


def test_worker_runs_requests_off_loop_thread_in_order():
    writer = PersistenceWriter()
    applied = []
    threads = set()

    def record(value):
        threads.add(threading.get_ident())
        applied.append(value)

    async def scenario():
        writer.start()
        for i in range(5):
            writer.submit(record, i)
        await writer.drain()
        await writer.stop()

    asyncio.run(scenario())
    assert applied == [0, 1, 2, 3, 4]
    assert threading.get_ident() not in threads
    assert not writer.is_running


def test_async_error_callback_scheduled_on_loop():
    writer = PersistenceWriter()
    seen = []

    async def on_error(error):
        seen.append(str(error))

    def failing():
        raise OSError("quota exceeded")

    writer.on_error(on_error)

    async def scenario():
        writer.submit(failing)
        await writer.drain()
        await asyncio.sleep(0)
        await writer.stop()

    asyncio.run(scenario())
    assert seen == ["quota exceeded"]
